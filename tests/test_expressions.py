"""Tests for the workflow expression language."""

import pytest

from agent_runtime.workflow import evaluate_condition, evaluate_expression, render_template

CONTEXT = {
    "data": {
        "amount": 150,
        "status": "open",
        "flag": True,
        "count": "7",
        "items": [{"name": "first"}, {"name": "second"}],
        "empty": "",
    },
    "threshold": 100,
}


class TestEvaluateExpression:
    def test_dotted_path(self):
        assert evaluate_expression("data.amount", CONTEXT) == 150

    def test_list_index(self):
        assert evaluate_expression("data.items.1.name", CONTEXT) == "second"
        assert evaluate_expression("data.items.5.name", CONTEXT) is None

    def test_missing_and_blank(self):
        assert evaluate_expression("data.nope.deeper", CONTEXT) is None
        assert evaluate_expression("", CONTEXT) is None
        assert evaluate_expression(None, CONTEXT) is None


class TestEvaluateCondition:
    """Tests for evaluate_condition()."""

    @pytest.mark.parametrize(
        "expr, expected",
        [
            ("data.amount > 100", True),
            ("data.amount < 100", False),
            ("data.amount >= 150", True),
            ("data.amount <= 149", False),
            ("data.amount > threshold", True),
            ("data.status === 'open'", True),
            ('data.status === "closed"', False),
            ("data.status !== 'closed'", True),
            ("data.flag === true", True),
            ("data.count > 5", True),
            ("data.missing === null", True),
        ],
    )
    def test_comparisons(self, expr, expected):
        assert evaluate_condition(expr, CONTEXT) is expected

    def test_strict_equality_does_not_coerce(self):
        assert evaluate_condition("data.count === 7", CONTEXT) is False
        assert evaluate_condition("data.flag === 1", CONTEXT) is False

    def test_non_numeric_relational_is_false(self):
        assert evaluate_condition("data.status > 1", CONTEXT) is False
        assert evaluate_condition("data.status < 1", CONTEXT) is False

    def test_truthiness(self):
        assert evaluate_condition("data.flag", CONTEXT) is True
        assert evaluate_condition("data.empty", CONTEXT) is False
        assert evaluate_condition("data.items", CONTEXT) is True
        assert evaluate_condition("data.missing", CONTEXT) is False

    def test_arbitrary_code_is_not_executed(self):
        assert evaluate_condition("__import__('os').getcwd()", CONTEXT) is False


class TestRenderTemplate:
    def test_placeholders(self):
        text = render_template("{{status}}: {{amount}} ({{missing}})", CONTEXT["data"])
        assert text == "open: 150 ()"

    def test_structured_values(self):
        assert render_template("{{flag}} {{items.0}}", CONTEXT["data"]) == 'true {"name": "first"}'

    def test_unrelated_braces_left_alone(self):
        assert render_template("{ {{status}} }", CONTEXT["data"]) == "{ open }"
