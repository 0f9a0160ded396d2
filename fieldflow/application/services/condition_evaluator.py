"""Trigger condition evaluation against entity data.

Conditions are AND-ed. Field paths are dotted (``customer.address.city``);
a missing key anywhere on the path yields MISSING, which fails every
operator except is_empty and the negated ones (!=, not_contains, not_in).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from fieldflow.domain.entities.workflow import Condition
from fieldflow.domain.enums import ConditionOperator

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

_NEGATED = frozenset({
    ConditionOperator.NOT_EQUALS,
    ConditionOperator.NOT_CONTAINS,
    ConditionOperator.NOT_IN,
})

_NUMERIC = frozenset({
    ConditionOperator.GREATER_THAN,
    ConditionOperator.GREATER_THAN_OR_EQUAL,
    ConditionOperator.LESS_THAN,
    ConditionOperator.LESS_THAN_OR_EQUAL,
})


def get_nested_value(data: Any, path: str) -> Any:
    """Resolve a dotted path; MISSING when any step is absent or not a mapping/list."""
    if not path:
        return data
    value = data
    for key in path.split("."):
        if isinstance(value, dict):
            if key not in value:
                return MISSING
            value = value[key]
        elif isinstance(value, list) and key.isdigit() and int(key) < len(value):
            value = value[int(key)]
        else:
            return MISSING
    return value


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).lower()


def loose_equals(left: Any, right: Any) -> bool:
    """Numbers compare numerically (``"5" == 5``); everything else by lower-cased text."""
    if left is None or right is None:
        return left is None and right is None
    left_num, right_num = _to_float(left), _to_float(right)
    if left_num is not None and right_num is not None:
        return left_num == right_num
    return _as_text(left) == _as_text(right)


def strict_equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


def is_empty(value: Any) -> bool:
    """MISSING, None, empty string and empty list are empty."""
    return value is MISSING or value is None or value == "" or value == []


def _membership_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple, set)):
        return [_as_text(v) for v in value]
    if value is None:
        return []
    return [part.strip().lower() for part in str(value).split(",")]


def _compare_numeric(operator: ConditionOperator, left: Any, right: Any) -> bool:
    left_num, right_num = _to_float(left), _to_float(right)
    if left_num is None or right_num is None:
        return False
    if operator is ConditionOperator.GREATER_THAN:
        return left_num > right_num
    if operator is ConditionOperator.GREATER_THAN_OR_EQUAL:
        return left_num >= right_num
    if operator is ConditionOperator.LESS_THAN:
        return left_num < right_num
    return left_num <= right_num


def evaluate_condition(condition: Condition, entity_data: dict[str, Any] | None) -> bool:
    """Evaluate one condition against entity data."""
    operator = condition.operator
    field_value = get_nested_value(entity_data or {}, condition.field)
    expected = condition.value

    if operator is ConditionOperator.IS_EMPTY:
        return is_empty(field_value)
    if operator is ConditionOperator.IS_NOT_EMPTY:
        return not is_empty(field_value)
    if field_value is MISSING:
        return operator in _NEGATED

    if operator is ConditionOperator.EQUALS:
        return loose_equals(field_value, expected)
    if operator is ConditionOperator.STRICT_EQUALS:
        return strict_equals(field_value, expected)
    if operator is ConditionOperator.NOT_EQUALS:
        return not loose_equals(field_value, expected)
    if operator in _NUMERIC:
        return _compare_numeric(operator, field_value, expected)
    if operator is ConditionOperator.CONTAINS:
        return _as_text(expected) in _as_text(field_value)
    if operator is ConditionOperator.NOT_CONTAINS:
        return _as_text(expected) not in _as_text(field_value)
    if operator is ConditionOperator.STARTS_WITH:
        return _as_text(field_value).startswith(_as_text(expected))
    if operator is ConditionOperator.ENDS_WITH:
        return _as_text(field_value).endswith(_as_text(expected))
    if operator is ConditionOperator.IN:
        return _as_text(field_value) in _membership_list(expected)
    if operator is ConditionOperator.NOT_IN:
        return _as_text(field_value) not in _membership_list(expected)
    logger.warning("Unknown operator: %s", operator)
    return False


def evaluate_all(conditions: Iterable[Condition], entity_data: dict[str, Any] | None) -> bool:
    """True when every condition holds; an empty list always holds."""
    return all(evaluate_condition(c, entity_data) for c in conditions)
