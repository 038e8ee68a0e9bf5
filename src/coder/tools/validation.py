"""
Runtime validation of tool arguments against a tool's JSON Schema.

Arguments arrive as decoded JSON. Each value is classified into one of the
JSON kinds (string, number, boolean, array, object, null) and checked
against the declared type. Unknown fields are rejected unless the schema sets
`additionalProperties: true`.
"""

import json
from typing import Any, Union

from ..errors import ValidationError, ValidationFailure

JSONValue = Union[str, int, float, bool, None, list["JSONValue"], dict[str, "JSONValue"]]


def value_kind(value: Any) -> str:
    """Return the JSON kind of a decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    raise TypeError(f"not a JSON value: {type(value).__name__}")


def _matches_type(value: Any, declared: str) -> bool:
    kind = value_kind(value)
    if declared == "integer":
        return kind == "number" and (isinstance(value, int) or value.is_integer())
    if declared == "number":
        return kind == "number"
    if declared in ("string", "boolean", "array", "object", "null"):
        return kind == declared
    # Unknown declared types are not enforced
    return True


def _type_label(declared: str) -> str:
    return {
        "string": "a string",
        "number": "a number",
        "integer": "an integer",
        "boolean": "a boolean",
        "array": "an array",
        "object": "an object",
        "null": "null",
    }.get(declared, declared)


def _validate_value(value: Any, schema: dict[str, Any], path: str) -> None:
    declared = schema.get("type")
    if isinstance(declared, str) and not _matches_type(value, declared):
        raise ValidationError(
            ValidationFailure.TYPE_MISMATCH,
            path,
            f"field {path} must be {_type_label(declared)}",
        )

    if declared == "array" and isinstance(schema.get("items"), dict):
        for i, item in enumerate(value):
            _validate_value(item, schema["items"], f"{path}[{i}]")
    elif declared == "object" and "properties" in schema:
        _validate_object(value, schema, prefix=f"{path}.")


def _validate_object(arguments: dict[str, Any], schema: dict[str, Any], prefix: str = "") -> None:
    properties: dict[str, Any] = schema.get("properties") or {}

    for name in schema.get("required") or []:
        if name not in arguments:
            raise ValidationError(
                ValidationFailure.MISSING_FIELD,
                f"{prefix}{name}",
                f"missing required field: {prefix}{name}",
            )

    allow_extra = schema.get("additionalProperties") is True
    for name, value in arguments.items():
        prop = properties.get(name)
        if prop is None:
            if allow_extra:
                continue
            raise ValidationError(
                ValidationFailure.UNEXPECTED_FIELD,
                f"{prefix}{name}",
                f"unexpected field: {prefix}{name}",
            )
        _validate_value(value, prop, f"{prefix}{name}")


def validate_arguments(schema: dict[str, Any], arguments: dict[str, Any]) -> None:
    """Validate decoded tool arguments. Raises ValidationError on the first problem."""
    _validate_object(arguments, schema)


def parse_arguments(raw: str) -> dict[str, Any]:
    """Decode raw tool-call arguments into a JSON object.

    Empty input is treated as no arguments. Raises ValueError when the text
    is not valid JSON or does not decode to an object.
    """
    if not raw or not raw.strip():
        return {}
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError(f"arguments must be a JSON object, got {value_kind(value)}")
    return value
