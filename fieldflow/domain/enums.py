"""Domain enumerations for field jobs.

JobState is the lifecycle of a field job; the allowed transitions live in
fieldflow.domain.entities.job.
"""

from enum import Enum

from fieldflow.shared.enums import _ValuesMixin


class JobState(_ValuesMixin, str, Enum):
    """Field job lifecycle state."""

    DRAFT = "draft"
    NEEDS_PERMIT = "needs_permit"
    WAITING_ON_CLIENT = "waiting_on_client"
    SCHEDULED = "scheduled"
    WEATHER_HOLD = "weather_hold"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    INVOICED = "invoiced"
    PAID = "paid"
    CANCELLED = "cancelled"


class ChangeSource(_ValuesMixin, str, Enum):
    """Who or what initiated a job state change."""

    MANUAL = "manual"
    AUTOMATION = "automation"
    SYSTEM = "system"
    API = "api"


class ConditionOperator(_ValuesMixin, str, Enum):
    """Comparison operators usable in trigger conditions.

    Symbolic and word forms are distinct members; from_raw() resolves both.
    """

    EQUALS = "=="
    STRICT_EQUALS = "==="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    IN = "in"
    NOT_IN = "not_in"

    @classmethod
    def from_raw(cls, raw: str) -> "ConditionOperator":
        """Resolve a stored operator string (symbol or word alias).

        Raises:
            ValueError: If the operator is not recognised.
        """
        key = (raw or "").strip().lower()
        if key in _OPERATOR_ALIASES:
            return _OPERATOR_ALIASES[key]
        return cls(key)


_OPERATOR_ALIASES: dict[str, ConditionOperator] = {
    "equals": ConditionOperator.EQUALS,
    "eq": ConditionOperator.EQUALS,
    "strict_equals": ConditionOperator.STRICT_EQUALS,
    "not_equals": ConditionOperator.NOT_EQUALS,
    "ne": ConditionOperator.NOT_EQUALS,
    "!==": ConditionOperator.NOT_EQUALS,
    "greater_than": ConditionOperator.GREATER_THAN,
    "gt": ConditionOperator.GREATER_THAN,
    "greater_than_or_equal": ConditionOperator.GREATER_THAN_OR_EQUAL,
    "greater_than_or_equals": ConditionOperator.GREATER_THAN_OR_EQUAL,
    "gte": ConditionOperator.GREATER_THAN_OR_EQUAL,
    "less_than": ConditionOperator.LESS_THAN,
    "lt": ConditionOperator.LESS_THAN,
    "less_than_or_equal": ConditionOperator.LESS_THAN_OR_EQUAL,
    "less_than_or_equals": ConditionOperator.LESS_THAN_OR_EQUAL,
    "lte": ConditionOperator.LESS_THAN_OR_EQUAL,
}
