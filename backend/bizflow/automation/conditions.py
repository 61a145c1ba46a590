"""Boolean predicates over run context used by condition nodes."""
from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from .context import resolve_field

BRANCH_YES = "yes"
BRANCH_NO = "no"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_number(value: Any) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def _compare(actual: Any, expected: Any, test: Callable[[float, float], bool]) -> bool:
    left = _as_number(actual)
    right = _as_number(expected)
    if left is None or right is None:
        return False
    return test(left, right)


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": lambda actual, expected: actual == expected,
    "not_equals": lambda actual, expected: actual != expected,
    "contains": lambda actual, expected: _as_text(expected) in _as_text(actual),
    "not_contains": lambda actual, expected: _as_text(expected) not in _as_text(actual),
    "greater_than": lambda actual, expected: _compare(actual, expected, lambda a, b: a > b),
    "less_than": lambda actual, expected: _compare(actual, expected, lambda a, b: a < b),
    "exists": lambda actual, _expected: actual is not None,
    "not_exists": lambda actual, _expected: actual is None,
}

_ALIASES = {
    "eq": "equals",
    "neq": "not_equals",
    "gt": "greater_than",
    "lt": "less_than",
}


def evaluate_operator(operator: str | None, actual: Any, expected: Any) -> bool:
    """Apply ``operator``; unknown operators evaluate to ``False``."""

    name = _ALIASES.get(operator or "", operator or "")
    test = _OPERATORS.get(name)
    if test is None:
        return False
    return bool(test(actual, expected))


def evaluate_condition(config: Mapping[str, Any], context: Mapping[str, Any]) -> dict[str, Any]:
    """Evaluate a ``{field, operator, value}`` predicate against a run context."""

    field = config.get("field") or ""
    operator = config.get("operator")
    expected = config.get("value")
    actual = resolve_field(context, str(field))

    condition_met = evaluate_operator(operator, actual, expected)
    return {
        "conditionMet": condition_met,
        "branchKey": BRANCH_YES if condition_met else BRANCH_NO,
        "field": field,
        "operator": operator,
        "value": expected,
        "actualValue": actual,
    }
