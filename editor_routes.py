"""Client paths of the editor page for each kind of node."""

from typing import Optional

from errors import UnknownType
from models import ContentNode, NodeType, QuizSubtype

QUIZ_EDITOR_PATHS = {
    QuizSubtype.IMAGE: "/quiz/imagequiz/edit/{id}",
    QuizSubtype.SHORT_ANSWER: "/quiz/short-answer/edit/{id}",
    QuizSubtype.TRUE_FALSE: "/quiz/truefalse/edit/{id}",
    QuizSubtype.DRAG_DROP: "/quiz/drag-drop/edit/{id}",
    QuizSubtype.MULTIPLE_CHOICE: "/quiz/multiplechoice/edit/{id}",
    QuizSubtype.REORDER: "/quiz/reorder/edit/{id}",
}

EDITOR_PATHS = {
    NodeType.LESSON: "/edit/{id}",
    NodeType.VIDEO: "/video/edit/{id}",
}


def editor_path(node_type: NodeType, subtype: Optional[QuizSubtype], node_id: str) -> str:
    if node_type == NodeType.QUIZ:
        if subtype is None:
            raise UnknownType(f"Quiz {node_id} has no subtype to pick an editor")
        return QUIZ_EDITOR_PATHS[QuizSubtype(subtype)].format(id=node_id)
    return EDITOR_PATHS[NodeType(node_type)].format(id=node_id)


def node_editor_path(node: ContentNode) -> str:
    return editor_path(node.type, node.subtype, node.id)
