"""
Tests for tool argument validation.
"""

import pytest

from coder.errors import ValidationError, ValidationFailure
from coder.tools.validation import parse_arguments, validate_arguments, value_kind

SCHEMA = {
    "type": "object",
    "properties": {
        "path": {"type": "string"},
        "start": {"type": "integer"},
        "ratio": {"type": "number"},
        "recursive": {"type": "boolean"},
        "paths": {"type": "array", "items": {"type": "string"}},
        "options": {
            "type": "object",
            "properties": {"depth": {"type": "integer"}},
            "required": ["depth"],
        },
        "nothing": {"type": "null"},
    },
    "required": ["path"],
}


def test_value_kind():
    """Test JSON kind classification."""
    assert value_kind("x") == "string"
    assert value_kind(1) == "number"
    assert value_kind(1.5) == "number"
    assert value_kind(True) == "boolean"
    assert value_kind([]) == "array"
    assert value_kind({}) == "object"
    assert value_kind(None) == "null"


def test_valid_arguments_pass():
    """Test that well-formed arguments are accepted."""
    validate_arguments(SCHEMA, {
        "path": "a.py",
        "start": 3,
        "ratio": 0.5,
        "recursive": False,
        "paths": ["a", "b"],
        "options": {"depth": 2},
        "nothing": None,
    })


def test_missing_required_field():
    """Test that a missing required field is reported."""
    with pytest.raises(ValidationError) as exc:
        validate_arguments(SCHEMA, {"start": 1})

    assert exc.value.kind == ValidationFailure.MISSING_FIELD
    assert exc.value.field == "path"


def test_missing_required_reported_before_other_problems():
    """Test that required fields are checked before unknown or mistyped ones."""
    with pytest.raises(ValidationError) as exc:
        validate_arguments(SCHEMA, {"bogus": 1, "start": "x"})

    assert exc.value.kind == ValidationFailure.MISSING_FIELD


def test_unexpected_field():
    """Test closed-world rejection of undeclared fields."""
    with pytest.raises(ValidationError) as exc:
        validate_arguments(SCHEMA, {"path": "a", "mode": "fast"})

    assert exc.value.kind == ValidationFailure.UNEXPECTED_FIELD
    assert exc.value.field == "mode"


def test_additional_properties_allowed():
    """Test that additionalProperties opens the schema."""
    schema = {**SCHEMA, "additionalProperties": True}
    validate_arguments(schema, {"path": "a", "mode": "fast"})


@pytest.mark.parametrize("field,value", [
    ("path", 5),
    ("start", "1"),
    ("start", 1.5),
    ("start", True),
    ("ratio", False),
    ("recursive", "yes"),
    ("paths", "a"),
    ("options", []),
    ("nothing", 0),
])
def test_type_mismatch(field, value):
    """Test that wrong runtime types are rejected."""
    with pytest.raises(ValidationError) as exc:
        validate_arguments(SCHEMA, {"path": "a", field: value})

    assert exc.value.kind == ValidationFailure.TYPE_MISMATCH


def test_integral_float_is_an_integer():
    """Test that 3.0 satisfies an integer field."""
    validate_arguments(SCHEMA, {"path": "a", "start": 3.0})


def test_integer_beyond_float_range():
    """Test that an integer too large for a float satisfies an integer field."""
    validate_arguments(SCHEMA, {"path": "a", "start": 10 ** 400})
    validate_arguments(SCHEMA, {"path": "a", "ratio": 10 ** 400})


def test_array_items_validated():
    """Test that array items are checked against the item schema."""
    with pytest.raises(ValidationError) as exc:
        validate_arguments(SCHEMA, {"path": "a", "paths": ["ok", 2]})

    assert exc.value.kind == ValidationFailure.TYPE_MISMATCH
    assert exc.value.field == "paths[1]"


def test_nested_object_validated():
    """Test recursion into nested object properties."""
    with pytest.raises(ValidationError) as exc:
        validate_arguments(SCHEMA, {"path": "a", "options": {}})

    assert exc.value.kind == ValidationFailure.MISSING_FIELD
    assert exc.value.field == "options.depth"


def test_parse_arguments():
    """Test decoding raw tool-call arguments."""
    assert parse_arguments('{"a": 1}') == {"a": 1}
    assert parse_arguments("") == {}
    assert parse_arguments("  ") == {}


def test_parse_arguments_rejects_bad_input():
    """Test that invalid JSON and non-objects raise ValueError."""
    with pytest.raises(ValueError):
        parse_arguments("{not json")
    with pytest.raises(ValueError):
        parse_arguments("[1, 2]")
