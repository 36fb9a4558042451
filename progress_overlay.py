"""
Annotate a unit's forest with one learner's progress.

The result is recomputed per request and never stored.
"""

from typing import Any, Dict, Iterable, List

from models import AnnotatedNode, ContentNode, NodeState
from progress_tracker import ProgressTracker
from unit_storage import UnitStorage


def _annotate(node: ContentNode, completed_ids: frozenset) -> AnnotatedNode:
    state = NodeState.COMPLETED if node.id in completed_ids else NodeState.AVAILABLE
    return AnnotatedNode(
        id=node.id,
        type=node.type,
        subtype=node.subtype,
        title=node.title,
        tooltip=node.tooltip.model_copy(),
        icon=node.icon,
        state=state,
        children=[_annotate(child, completed_ids) for child in node.children],
    )


def resolve_overlay(forest: List[ContentNode], completed_ids: Iterable[str]) -> List[AnnotatedNode]:
    """Tag every node ``completed`` or ``available``.

    Ids in ``completed_ids`` that match no node are ignored; they usually
    belong to nodes deleted after the learner finished them.
    """
    completed = frozenset(completed_ids)
    return [_annotate(root, completed) for root in forest]


def skill_tree_saved_data(overlay: List[AnnotatedNode]) -> Dict[str, Dict[str, Any]]:
    """Saved-state mapping consumed by the skill tree widget."""
    saved = {}
    stack = list(overlay)
    while stack:
        node = stack.pop()
        if node.state == NodeState.COMPLETED:
            saved[node.id] = {'optional': False, 'nodeState': 'selected'}
        stack.extend(node.children)
    return saved


def unit_overlay(storage: UnitStorage, tracker: ProgressTracker,
                 unit_id: str, learner_id: str) -> List[AnnotatedNode]:
    forest = storage.load(unit_id)
    return resolve_overlay(forest, tracker.load_completed(learner_id, unit_id))
