"""Workflow domain entities.

A workflow is a definition: ordered triggers (event type + conditions) and
ordered actions. The engine only reads definitions; an admin surface
writes them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from fieldflow.domain.enums import ConditionOperator
from fieldflow.shared.enums import SCHEDULE_TRIGGER_TYPE


@dataclass(frozen=True)
class Condition:
    """A single field comparison evaluated against entity data."""

    field: str
    operator: ConditionOperator
    value: Any = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Condition":
        """Build from the stored JSON shape {field, operator, value}.

        Raises:
            ValueError: If the operator is unknown or field is missing.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"condition must be an object, got {type(raw).__name__}")
        operator = ConditionOperator.from_raw(str(raw.get("operator", "")))
        field_path = raw.get("field")
        if not field_path or not isinstance(field_path, str):
            raise ValueError("condition field must be a non-empty string")
        return cls(field=field_path, operator=operator, value=raw.get("value"))


@dataclass
class Trigger:
    """What starts a workflow: an event type (or 'schedule') plus conditions."""

    id: str
    workflow_id: str
    trigger_type: str
    config: dict[str, Any] = field(default_factory=dict)
    conditions: list[dict[str, Any]] = field(default_factory=list)
    order: int = 0

    def parse_conditions(self) -> list[Condition]:
        """Stored condition dicts as Condition objects.

        Raises:
            ValueError: A condition is malformed or uses an unknown operator.
        """
        if not isinstance(self.conditions, list):
            raise ValueError("conditions must be a list")
        return [Condition.from_dict(raw) for raw in self.conditions]

    @property
    def is_schedule(self) -> bool:
        return self.trigger_type == SCHEDULE_TRIGGER_TYPE

    @property
    def cron_expression(self) -> str | None:
        return self.config.get("cron_expression") or self.config.get("cron")

    @property
    def timezone(self) -> str:
        return self.config.get("timezone") or "UTC"


@dataclass
class Action:
    """One step in a workflow's action chain."""

    id: str
    workflow_id: str
    action_type: str
    config: dict[str, Any] = field(default_factory=dict)
    delay_minutes: int = 0
    order: int = 0
    continue_on_error: bool = True


@dataclass
class WorkflowDefinition:
    """Domain entity for a workflow with its triggers and actions."""

    id: str
    name: str
    description: str | None = None
    is_active: bool = True
    is_template: bool = False
    template_category: str | None = None
    max_executions_per_day: int = 100
    cooldown_minutes: int = 0
    deleted_at: datetime | None = None
    triggers: list[Trigger] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)

    @property
    def is_runnable(self) -> bool:
        """Active and not soft-deleted."""
        return self.is_active and self.deleted_at is None

    def ordered_triggers(self) -> list[Trigger]:
        return sorted(self.triggers, key=lambda t: t.order)

    def ordered_actions(self) -> list[Action]:
        return sorted(self.actions, key=lambda a: a.order)

    def find_action(self, action_id: str) -> Action | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def has_trigger_type(self, trigger_type: str) -> bool:
        return any(t.trigger_type == trigger_type for t in self.triggers)
