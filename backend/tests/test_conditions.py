import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.bizflow.automation.conditions import evaluate_condition, evaluate_operator

CONTEXT = {
    "payload": {"source": "website", "amount": "150", "tags": ["vip"], "optIn": True},
    "contact": {"email": "ada@example.com", "first_name": "Ada"},
    "intent": "lead.created",
}


@pytest.mark.parametrize(
    ("operator", "actual", "expected", "result"),
    [
        ("equals", "a", "a", True),
        ("equals", "5", 5, False),
        ("eq", 3, 3, True),
        ("not_equals", "a", "b", True),
        ("neq", "a", "a", False),
        ("contains", "hello world", "world", True),
        ("contains", None, "x", False),
        ("contains", True, "true", True),
        ("not_contains", "hello", "x", True),
        ("greater_than", "10", 5, True),
        ("gt", 1, "2", False),
        ("less_than", 1.5, "2", True),
        ("lt", "abc", 2, False),
        ("greater_than", None, 0, False),
        ("exists", "", None, True),
        ("exists", None, None, False),
        ("not_exists", None, None, True),
        ("matches_regex", "a", "a", False),
        (None, "a", "a", False),
    ],
)
def test_evaluate_operator(operator, actual, expected, result):
    assert evaluate_operator(operator, actual, expected) is result


def test_condition_reads_payload_fields():
    result = evaluate_condition(
        {"field": "payload.source", "operator": "equals", "value": "website"}, CONTEXT
    )
    assert result["conditionMet"] is True
    assert result["branchKey"] == "yes"
    assert result["actualValue"] == "website"


def test_condition_reads_contact_and_root_fields():
    assert evaluate_condition(
        {"field": "contact.first_name", "operator": "equals", "value": "Ada"}, CONTEXT
    )["branchKey"] == "yes"
    assert evaluate_condition(
        {"field": "intent", "operator": "contains", "value": "lead"}, CONTEXT
    )["branchKey"] == "yes"


def test_condition_with_missing_field_takes_no_branch():
    result = evaluate_condition(
        {"field": "payload.missing", "operator": "greater_than", "value": 3}, CONTEXT
    )
    assert result["conditionMet"] is False
    assert result["branchKey"] == "no"
    assert result["actualValue"] is None


def test_numeric_comparison_coerces_strings():
    result = evaluate_condition(
        {"field": "payload.amount", "operator": "gt", "value": "99.5"}, CONTEXT
    )
    assert result["conditionMet"] is True
