"""Minimal JSON-schema check for structured extraction results."""

from typing import Any


def js_type(value: Any) -> str:
    """Type name in JSON-schema vocabulary."""
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
    return type(value).__name__


def validate_against_schema(data: Any, schema: dict | None) -> str | None:
    """Required keys and top-level property types. Returns an error string or None."""
    if not schema:
        return None
    if not isinstance(data, dict):
        return f"Expected an object but got {js_type(data)}"

    required = schema.get("required") or []
    properties = schema.get("properties") or {}

    errors = [f"Missing required field: {key}" for key in required if key not in data]

    for key, value in data.items():
        expected = (properties.get(key) or {}).get("type")
        if not expected:
            continue
        actual = js_type(value)
        if actual == expected:
            continue
        if expected == "integer" and actual == "number":
            continue
        errors.append(f'Field "{key}" expected type "{expected}" but got "{actual}"')

    return "; ".join(errors) if errors else None
