"""
Expression language used by logic and transform nodes.

Grammar (nothing else is accepted)::

    condition  := path OP operand | path
    OP         := "===" | "!==" | ">=" | "<=" | ">" | "<"
    operand    := "true" | "false" | "null" | "'" text "'" | '"' text '"' | number | path
    path       := segment ("." segment)*
    template   := any text with "{{" path "}}" placeholders

Operators are tried in the order listed; the first one present in the
expression with non-empty sides on both halves is used. ``===`` and ``!==``
compare strictly (booleans never equal numbers); the relational operators
coerce both sides to numbers and are false when either side is not numeric.
A condition with no operator is a truthiness test on the path.
"""

import json
import math
import re
from typing import Any

OPERATORS = ("===", "!==", ">=", "<=", ">", "<")

_PLACEHOLDER = re.compile(r"\{\{(\w+(?:\.\w+)*)\}\}")


def evaluate_expression(expr: str | None, context: Any) -> Any:
    """Resolve a dotted path against nested dicts (and lists by index)."""
    if not expr or not expr.strip():
        return None

    current = context
    for part in expr.strip().split("."):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def parse_operand(text: str, context: Any) -> Any:
    if text == "true":
        return True
    if text == "false":
        return False
    if text == "null":
        return None
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    number = _parse_number(text)
    if number is not None:
        return number
    return evaluate_expression(text, context)


def evaluate_condition(expr: str, context: Any) -> bool:
    for op in OPERATORS:
        if op not in expr:
            continue
        left_text, _, right_text = expr.partition(op)
        left_text, right_text = left_text.strip(), right_text.strip()
        if not left_text or not right_text:
            continue

        left = evaluate_expression(left_text, context)
        right = parse_operand(right_text, context)

        if op == "===":
            return strict_equals(left, right)
        if op == "!==":
            return not strict_equals(left, right)

        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
        if op == ">=":
            return a >= b
        if op == "<=":
            return a <= b
        if op == ">":
            return a > b
        return a < b

    return is_truthy(evaluate_expression(expr, context))


def render_template(template: str, data: Any) -> str:
    """Replace ``{{path}}`` placeholders; missing values render as empty text."""

    def _sub(match: re.Match) -> str:
        value = evaluate_expression(match.group(1), data)
        return "" if value is None else to_display(value)

    return _PLACEHOLDER.sub(_sub, template)


def strict_equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


def to_number(value: Any) -> float:
    """Numeric coercion; NaN when the value has no numeric reading."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        if not value.strip():
            return 0.0
        number = _parse_number(value.strip())
        return float("nan") if number is None else float(number)
    return float("nan")


def is_truthy(value: Any) -> bool:
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (dict, list)):
        return True
    return bool(value)


def to_display(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_number(text: str) -> int | float | None:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number
