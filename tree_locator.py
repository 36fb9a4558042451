"""
Id-based search over a unit's forest.

Searches are depth-first, parent before children, children left to right.
Ids are unique within a unit so the first match is the only match.
"""

from typing import Iterator, List, NamedTuple, Optional, Set

from errors import NodeNotFound
from models import ContentNode


class NodeRef(NamedTuple):
    node: ContentNode
    siblings: List[ContentNode]  # the list holding node: a children list or the forest itself
    index: int


class ParentRef(NamedTuple):
    parent: ContentNode
    index: int  # position of the child within parent.children


def iter_nodes(forest: List[ContentNode]) -> Iterator[ContentNode]:
    """Yield every node in document order."""
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def collect_ids(forest: List[ContentNode]) -> Set[str]:
    return {node.id for node in iter_nodes(forest)}


def locate(forest: List[ContentNode], node_id: str) -> Optional[NodeRef]:
    for index, node in enumerate(forest):
        if node.id == node_id:
            return NodeRef(node, forest, index)
        found = locate(node.children, node_id)
        if found is not None:
            return found
    return None


def find_by_id(forest: List[ContentNode], node_id: str) -> ContentNode:
    found = locate(forest, node_id)
    if found is None:
        raise NodeNotFound(node_id)
    return found.node


def find_parent(forest: List[ContentNode], node_id: str) -> Optional[ParentRef]:
    """Return the parent of ``node_id``, or None when the node is a root.

    Raises NodeNotFound when the id does not occur in the forest at all.
    """
    if any(root.id == node_id for root in forest):
        return None
    for node in iter_nodes(forest):
        for index, child in enumerate(node.children):
            if child.id == node_id:
                return ParentRef(node, index)
    raise NodeNotFound(node_id)
