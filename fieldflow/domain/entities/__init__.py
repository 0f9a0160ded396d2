"""Domain entities."""

from fieldflow.domain.entities.workflow import (
    Action,
    Condition,
    Trigger,
    WorkflowDefinition,
)

__all__ = ["Action", "Condition", "Trigger", "WorkflowDefinition"]
