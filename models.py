import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field, ValidationError, model_validator

from errors import CycleDetected, DuplicateId, InvariantViolation, UnknownType

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Description of the new child node"


class NodeType(str, Enum):
    LESSON = "lesson"
    QUIZ = "quiz"
    VIDEO = "video"


class QuizSubtype(str, Enum):
    IMAGE = "Image"
    SHORT_ANSWER = "ShortAnswer"
    TRUE_FALSE = "TrueFalse"
    DRAG_DROP = "DragDrop"
    MULTIPLE_CHOICE = "MultipleChoice"
    REORDER = "Reorder"


class NodeState(str, Enum):
    COMPLETED = "completed"
    AVAILABLE = "available"


class Tooltip(BaseModel):
    content: Optional[str] = None


class ContentNode(BaseModel):
    id: str
    type: NodeType
    subtype: Optional[QuizSubtype] = None  # only meaningful for quizzes
    title: str
    tooltip: Tooltip = Field(default_factory=Tooltip)
    icon: Optional[str] = None  # symbolic key, resolved by the client
    children: List["ContentNode"] = []


class NodeDraft(BaseModel):
    """Caller-supplied shape of a node that is about to be created.

    Any ``id`` or ``children`` the caller sends are discarded: the editor
    assigns the id and decides the children itself.
    """
    type: NodeType
    subtype: Optional[QuizSubtype] = None
    title: Optional[str] = None
    tooltip: Optional[Tooltip] = None
    icon: Optional[str] = None

    @model_validator(mode="after")
    def check_subtype(self):
        if self.type == NodeType.QUIZ and self.subtype is None:
            raise ValueError("A quiz needs a subtype")
        return self

    def to_node(self, node_id: str) -> ContentNode:
        tooltip = self.tooltip or Tooltip(content=DEFAULT_DESCRIPTION)
        return ContentNode(
            id=node_id,
            type=self.type,
            subtype=self.subtype if self.type == NodeType.QUIZ else None,
            title=self.title if self.title is not None else f"New {self.type.value}",
            tooltip=tooltip.model_copy(),
            icon=self.icon or f"{self.type.value}Icon",
            children=[],
        )


class Unit(BaseModel):
    id: str
    title: str
    data: List[ContentNode] = []  # the forest: a unit may have several roots


class AnnotatedNode(BaseModel):
    id: str
    type: NodeType
    subtype: Optional[QuizSubtype] = None
    title: str
    tooltip: Tooltip = Field(default_factory=Tooltip)
    icon: Optional[str] = None
    state: NodeState
    children: List["AnnotatedNode"] = []


ContentNode.model_rebuild()
AnnotatedNode.model_rebuild()


def _check_type(node: ContentNode) -> None:
    try:
        node_type = NodeType(node.type)
    except ValueError:
        raise UnknownType(f"Unknown node type {node.type!r} on node {node.id}")
    if node_type == NodeType.QUIZ and node.subtype is not None:
        try:
            QuizSubtype(node.subtype)
        except ValueError:
            raise UnknownType(f"Unknown quiz subtype {node.subtype!r} on node {node.id}")


def validate_forest(forest: Iterable[ContentNode]) -> None:
    """Check the structural invariants every stored forest must satisfy.

    Raises CycleDetected if a node object is reachable from itself,
    DuplicateId if two nodes share an id and UnknownType if a node's type
    lies outside NodeType.
    """
    seen: Set[str] = set()

    def visit(node: ContentNode, path: Set[int]) -> None:
        marker = id(node)
        if marker in path:
            raise CycleDetected(node.id)
        _check_type(node)
        if node.id in seen:
            raise DuplicateId(node.id)
        seen.add(node.id)
        path.add(marker)
        for child in node.children:
            visit(child, path)
        path.discard(marker)

    for root in forest:
        visit(root, set())


def parse_node_draft(data: Dict[str, Any], subtype: Optional[str] = None) -> NodeDraft:
    """Build a NodeDraft from a request payload.

    ``subtype`` is the separate ``inputSubType`` the editor UI sends next to
    the node. Type problems surface as UnknownType, anything else malformed as
    InvariantViolation.
    """
    if not isinstance(data, dict):
        raise InvariantViolation("New node must be an object")
    payload = dict(data)
    if subtype:
        if payload.get("type") == NodeType.QUIZ.value:
            payload["subtype"] = subtype
        else:
            logger.warning(f"Ignoring subtype {subtype!r} for node type {payload.get('type')!r}")
    try:
        return NodeDraft.model_validate(payload)
    except ValidationError as e:
        # Errors without a location come from check_subtype
        if any(not err["loc"] or err["loc"][0] in ("type", "subtype") for err in e.errors()):
            raise UnknownType(f"Invalid node type: {str(e)}")
        raise InvariantViolation(f"Invalid new node: {str(e)}")
