"""
Structural edits of a unit's forest.

The module-level functions are pure: they copy the forest, edit the copy and
return it, leaving the input untouched. CurriculumEditor runs them against a
stored unit under the unit's lock and only saves a copy that passes
validate_forest, so a failed edit leaves the stored unit as it was.
"""

import logging
import uuid
from typing import Callable, List, Optional

from errors import CannotDeleteRoot
from models import ContentNode, NodeDraft, Tooltip, validate_forest
from tree_locator import find_by_id, find_parent
from unit_storage import UnitStorage

logger = logging.getLogger(__name__)

Forest = List[ContentNode]


def _copy_forest(forest: Forest) -> Forest:
    return [node.model_copy(deep=True) for node in forest]


def append_child(forest: Forest, target_id: str, new_node: ContentNode) -> Forest:
    """Add ``new_node`` as the last child of ``target_id``.

    The target's existing children stay where they are, as siblings of the
    new node. The new node always starts without children.
    """
    edited = _copy_forest(forest)
    target = find_by_id(edited, target_id)
    target.children.append(new_node.model_copy(update={'children': []}))
    return edited


def insert_between(forest: Forest, target_id: str, new_node: ContentNode) -> Forest:
    """Interpose ``new_node`` between ``target_id`` and its children.

    The new node becomes the target's only child and adopts the target's
    previous children in their original order.
    """
    edited = _copy_forest(forest)
    target = find_by_id(edited, target_id)
    target.children = [new_node.model_copy(update={'children': target.children})]
    return edited


def delete_node(forest: Forest, node_id: str) -> Forest:
    """Remove ``node_id`` and splice its children into its parent.

    The children take the deleted node's slot, in their original order.
    Roots have no parent to receive their children and cannot be deleted.
    """
    edited = _copy_forest(forest)
    parent_ref = find_parent(edited, node_id)
    if parent_ref is None:
        raise CannotDeleteRoot(node_id)
    parent, index = parent_ref
    removed = parent.children[index]
    parent.children[index:index + 1] = removed.children
    return edited


def relabel_node(forest: Forest, node_id: str, new_title: str,
                 new_description: Optional[str]) -> Forest:
    edited = _copy_forest(forest)
    node = find_by_id(edited, node_id)
    node.title = new_title
    node.tooltip = Tooltip(content=new_description)
    return edited


class CurriculumEditor:
    """Applies structural edits to stored units, one unit at a time."""

    def __init__(self, storage: UnitStorage, id_factory: Optional[Callable[[], str]] = None):
        self.storage = storage
        self.id_factory = id_factory or (lambda: uuid.uuid4().hex)

    def _commit(self, unit_id: str, edit: Callable[[Forest], Forest]) -> Forest:
        with self.storage.transaction(unit_id):
            forest = self.storage.load(unit_id)
            edited = edit(forest)
            validate_forest(edited)
            self.storage.save(unit_id, edited)
        return edited

    def append_child(self, unit_id: str, target_id: str, draft: NodeDraft) -> ContentNode:
        new_node = draft.to_node(self.id_factory())
        logger.debug(f"Appending {new_node.type.value} {new_node.id} under {target_id} in unit {unit_id}")
        edited = self._commit(unit_id, lambda forest: append_child(forest, target_id, new_node))
        return find_by_id(edited, new_node.id)

    def insert_between(self, unit_id: str, target_id: str, draft: NodeDraft) -> ContentNode:
        new_node = draft.to_node(self.id_factory())
        logger.debug(f"Inserting {new_node.type.value} {new_node.id} below {target_id} in unit {unit_id}")
        edited = self._commit(unit_id, lambda forest: insert_between(forest, target_id, new_node))
        return find_by_id(edited, new_node.id)

    def delete_node(self, unit_id: str, node_id: str) -> None:
        logger.debug(f"Deleting node {node_id} from unit {unit_id}")
        self._commit(unit_id, lambda forest: delete_node(forest, node_id))

    def relabel_node(self, unit_id: str, node_id: str, new_title: str,
                     new_description: Optional[str]) -> ContentNode:
        logger.debug(f"Relabelling node {node_id} in unit {unit_id}")
        edited = self._commit(
            unit_id, lambda forest: relabel_node(forest, node_id, new_title, new_description)
        )
        return find_by_id(edited, node_id)
