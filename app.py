import logging
import gradio as gr
from typing import List, Optional, Tuple

from config import Settings, configure_logging
from editor_routes import node_editor_path
from errors import CurriculumError
from models import ContentNode, NodeState, NodeType, QuizSubtype, AnnotatedNode, parse_node_draft
from progress_overlay import unit_overlay
from progress_tracker import ProgressTracker
from tree_editor import CurriculumEditor
from tree_locator import find_by_id
from unit_storage import UnitStorage

settings = Settings.from_env()
configure_logging(settings)
logger = logging.getLogger(__name__)


class EditorState:
    def __init__(self, settings: Settings):
        self.storage = UnitStorage(settings.units_dir, settings.lock_timeout)
        self.progress = ProgressTracker(settings.progress_dir)
        self.editor = CurriculumEditor(self.storage)

state = EditorState(settings)


def format_outline(forest: List[ContentNode], depth: int = 0) -> str:
    """Render a forest as a nested markdown list"""
    lines = []
    for node in forest:
        kind = node.type.value if node.subtype is None else f"{node.type.value}/{node.subtype.value}"
        lines.append(f"{'  ' * depth}- **{node.title}** [{kind}] `{node.id}`")
        if node.children:
            lines.append(format_outline(node.children, depth + 1))
    return "\n".join(lines)


def format_overlay(overlay: List[AnnotatedNode], depth: int = 0) -> str:
    """Render a learner's annotated forest as a nested markdown list"""
    lines = []
    for node in overlay:
        mark = "✅" if node.state == NodeState.COMPLETED else "⬜"
        lines.append(f"{'  ' * depth}- {mark} {node.title} `{node.id}`")
        if node.children:
            lines.append(format_overlay(node.children, depth + 1))
    return "\n".join(lines)


def _unit_outline(unit_id: str) -> str:
    unit = state.storage.load_unit(unit_id)
    return f"# {unit.title}\n\n{format_outline(unit.data)}"


def load_unit(unit_id: str) -> Tuple[str, str]:
    """Load a unit and show its outline"""
    try:
        outline = _unit_outline(unit_id)
        return f"Loaded unit: {unit_id}", outline
    except CurriculumError as e:
        logger.error(f"Error loading unit: {str(e)}")
        return f"Error: {str(e)}", ""


def add_node(unit_id: str, target_id: str, node_type: str, subtype: Optional[str],
             title: str, description: str, insert: bool = False) -> Tuple[str, str]:
    """Append or insert a new node below the target"""
    try:
        new_node = {"type": node_type}
        if title:
            new_node["title"] = title
        if description:
            new_node["tooltip"] = {"content": description}
        draft = parse_node_draft(new_node, subtype)

        if insert:
            node = state.editor.insert_between(unit_id, target_id, draft)
        else:
            node = state.editor.append_child(unit_id, target_id, draft)

        return (
            f"Added {node.title} ({node.id}). Edit it at {node_editor_path(node)}",
            _unit_outline(unit_id)
        )
    except CurriculumError as e:
        logger.error(f"Error adding node: {str(e)}")
        return f"Error: {str(e)}", ""


def append_node(unit_id: str, target_id: str, node_type: str, subtype: Optional[str],
                title: str, description: str) -> Tuple[str, str]:
    return add_node(unit_id, target_id, node_type, subtype, title, description, insert=False)


def insert_node(unit_id: str, target_id: str, node_type: str, subtype: Optional[str],
                title: str, description: str) -> Tuple[str, str]:
    return add_node(unit_id, target_id, node_type, subtype, title, description, insert=True)


def delete_node(unit_id: str, node_id: str) -> Tuple[str, str]:
    """Delete a node; its children move up into its place"""
    try:
        state.editor.delete_node(unit_id, node_id)
        return f"Deleted node {node_id}", _unit_outline(unit_id)
    except CurriculumError as e:
        logger.error(f"Error deleting node: {str(e)}")
        return f"Error: {str(e)}", ""


def relabel_node(unit_id: str, node_id: str, title: str, description: str) -> Tuple[str, str]:
    try:
        node = state.editor.relabel_node(unit_id, node_id, title, description)
        return f"Updated {node.id}", _unit_outline(unit_id)
    except CurriculumError as e:
        logger.error(f"Error updating node: {str(e)}")
        return f"Error: {str(e)}", ""


def show_progress(unit_id: str, learner_id: str) -> Tuple[str, str]:
    """Show the unit as a learner sees it"""
    try:
        overlay = unit_overlay(state.storage, state.progress, unit_id, learner_id)
        completed = state.progress.load_completed(learner_id, unit_id)
        return f"{learner_id} has completed {len(completed)} node(s)", format_overlay(overlay)
    except (CurriculumError, ValueError) as e:
        logger.error(f"Error loading progress: {str(e)}")
        return f"Error: {str(e)}", ""


def complete_node(unit_id: str, learner_id: str, node_id: str) -> Tuple[str, str]:
    try:
        find_by_id(state.storage.load(unit_id), node_id)
        state.progress.mark_completed(learner_id, unit_id, node_id)
    except (CurriculumError, ValueError) as e:
        logger.error(f"Error recording completion: {str(e)}")
        return f"Error: {str(e)}", ""
    return show_progress(unit_id, learner_id)


def create_interface():
    """Create the Gradio curriculum editor"""
    with gr.Blocks(title="Curriculum Editor") as app:
        gr.Markdown("""
        # 🎓 Curriculum Editor
        Restructure a unit's learning path and preview a learner's progress.
        """)

        def get_unit_choices():
            units = state.storage.list_units()
            return [(f"{v['title']} ({v['nodes']} nodes)", k) for k, v in units.items()]

        units_dropdown = gr.Dropdown(
            label="Unit",
            choices=get_unit_choices(),
            type="value",
            value=None,
            interactive=True
        )
        load_btn = gr.Button("Load Unit")

        status_output = gr.Textbox(
            label="Status",
            interactive=False
        )

        with gr.Tab("Edit Learning Path"):
            with gr.Row():
                with gr.Column():
                    target_input = gr.Textbox(label="Selected Node ID")
                    type_input = gr.Dropdown(
                        choices=[t.value for t in NodeType],
                        value=NodeType.LESSON.value,
                        label="New Node Type"
                    )
                    subtype_input = gr.Dropdown(
                        choices=[s.value for s in QuizSubtype],
                        value=None,
                        label="Quiz Type"
                    )
                    title_input = gr.Textbox(label="Title")
                    description_input = gr.Textbox(label="Description")
                    with gr.Row():
                        append_btn = gr.Button("Append Child", variant="primary")
                        insert_btn = gr.Button("Insert Child")
                        relabel_btn = gr.Button("Update Details")
                        delete_btn = gr.Button("Delete Node", variant="stop")
                with gr.Column():
                    outline_output = gr.Markdown(value="")

        with gr.Tab("Learner Progress"):
            learner_input = gr.Textbox(label="Learner ID")
            completed_input = gr.Textbox(label="Completed Node ID")
            with gr.Row():
                progress_btn = gr.Button("Show Progress")
                complete_btn = gr.Button("Mark Completed")
            progress_output = gr.Markdown(value="")

        def refresh_units():
            return gr.Dropdown(choices=get_unit_choices())

        units_dropdown.focus(
            fn=refresh_units,
            inputs=[],
            outputs=[units_dropdown]
        )

        # Event handlers
        load_btn.click(
            fn=load_unit,
            inputs=[units_dropdown],
            outputs=[status_output, outline_output]
        )

        node_inputs = [units_dropdown, target_input, type_input, subtype_input, title_input, description_input]
        append_btn.click(fn=append_node, inputs=node_inputs, outputs=[status_output, outline_output])
        insert_btn.click(fn=insert_node, inputs=node_inputs, outputs=[status_output, outline_output])

        relabel_btn.click(
            fn=relabel_node,
            inputs=[units_dropdown, target_input, title_input, description_input],
            outputs=[status_output, outline_output]
        )

        delete_btn.click(
            fn=delete_node,
            inputs=[units_dropdown, target_input],
            outputs=[status_output, outline_output]
        )

        progress_btn.click(
            fn=show_progress,
            inputs=[units_dropdown, learner_input],
            outputs=[status_output, progress_output]
        )

        complete_btn.click(
            fn=complete_node,
            inputs=[units_dropdown, learner_input, completed_input],
            outputs=[status_output, progress_output]
        )

    return app

if __name__ == "__main__":
    app = create_interface()
    app.queue()
    app.launch(show_error=True)
