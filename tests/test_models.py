"""Tests for the node model, forest validation and draft parsing."""

import pytest
from pydantic import ValidationError

from conftest import make_node
from errors import CycleDetected, DuplicateId, InvariantViolation, UnknownType
from models import (
    DEFAULT_DESCRIPTION,
    ContentNode,
    NodeDraft,
    NodeType,
    QuizSubtype,
    Unit,
    parse_node_draft,
    validate_forest,
)


class TestContentNode:

    def test_parses_nested_record(self):
        node = ContentNode.model_validate({
            "id": "A",
            "type": "lesson",
            "title": "Intro",
            "tooltip": {"content": "Start here"},
            "icon": "lessonIcon",
            "children": [{"id": "B", "type": "video", "title": "Clip", "children": []}],
        })
        assert node.type == NodeType.LESSON
        assert node.tooltip.content == "Start here"
        assert node.children[0].id == "B"
        assert node.children[0].tooltip.content is None

    def test_unknown_type_rejected_on_parse(self):
        with pytest.raises(ValidationError):
            ContentNode(id="A", type="podcast", title="x")

    def test_unit_roundtrips_through_json_dump(self, forest):
        unit = Unit(id="u", title="Unit", data=forest)
        again = Unit.model_validate(unit.model_dump(mode="json"))
        assert again == unit


class TestValidateForest:

    def test_valid_forest_passes(self, forest):
        validate_forest(forest)

    def test_empty_forest_passes(self):
        validate_forest([])

    def test_duplicate_across_roots(self):
        with pytest.raises(DuplicateId) as exc:
            validate_forest([make_node("A"), make_node("A")])
        assert exc.value.node_id == "A"

    def test_duplicate_in_subtree(self, forest):
        forest[1].children.append(make_node("D"))
        with pytest.raises(DuplicateId):
            validate_forest(forest)

    def test_cycle_detected(self):
        node = make_node("A")
        node.children.append(node)
        with pytest.raises(CycleDetected):
            validate_forest([node])

    def test_unknown_type_after_construction(self):
        node = ContentNode.model_construct(id="A", type="podcast", title="x", children=[])
        with pytest.raises(UnknownType):
            validate_forest([node])

    def test_failures_are_invariant_violations(self):
        with pytest.raises(InvariantViolation):
            validate_forest([make_node("A"), make_node("A")])


class TestNodeDraft:

    def test_defaults_follow_node_type(self):
        node = NodeDraft(type="video").to_node("x1")
        assert node.id == "x1"
        assert node.title == "New video"
        assert node.icon == "videoIcon"
        assert node.tooltip.content == DEFAULT_DESCRIPTION
        assert node.children == []

    def test_quiz_requires_subtype(self):
        with pytest.raises(ValidationError):
            NodeDraft(type="quiz")

    def test_parse_ignores_caller_id_and_children(self):
        draft = parse_node_draft({
            "id": "caller-chosen",
            "type": "lesson",
            "title": "Fractions",
            "children": [{"id": "zz"}],
        })
        node = draft.to_node("fresh")
        assert node.id == "fresh"
        assert node.children == []
        assert node.title == "Fractions"

    def test_parse_applies_input_subtype_to_quiz(self):
        draft = parse_node_draft({"type": "quiz"}, "ShortAnswer")
        assert draft.subtype == QuizSubtype.SHORT_ANSWER

    def test_parse_drops_subtype_for_lesson(self):
        draft = parse_node_draft({"type": "lesson"}, "ShortAnswer")
        assert draft.subtype is None

    @pytest.mark.parametrize("payload,subtype", [
        ({"type": "podcast"}, None),
        ({"type": "quiz"}, None),
        ({"type": "quiz"}, "Crossword"),
        ({}, None),
    ])
    def test_parse_type_problems_are_unknown_type(self, payload, subtype):
        with pytest.raises(UnknownType):
            parse_node_draft(payload, subtype)

    def test_parse_other_problems_are_invariant_violations(self):
        with pytest.raises(InvariantViolation) as exc:
            parse_node_draft({"type": "lesson", "title": ["not", "a", "string"]})
        assert not isinstance(exc.value, UnknownType)

    def test_parse_rejects_non_object(self):
        with pytest.raises(InvariantViolation):
            parse_node_draft("lesson")
