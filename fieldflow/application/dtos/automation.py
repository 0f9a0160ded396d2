"""DTOs for events, execution log rows, scheduled jobs and run results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class BusinessEvent:
    """Envelope delivered to event listeners."""

    event_id: str
    event_type: str
    entity_id: str
    entity_type: str
    entity_data: dict[str, Any]
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "entity_id": self.entity_id,
            "entity_type": self.entity_type,
            "entity_data": self.entity_data,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class EmitResult:
    """Outcome of EventBus.emit: either emitted with an id or skipped with a reason."""

    emitted: bool
    event_id: str | None = None
    skipped: bool = False
    reason: str | None = None


@dataclass(frozen=True)
class ExecutionLogCreate:
    """One append-only automation log row to persist."""

    execution_id: str
    status: str
    workflow_id: str | None = None
    trigger_id: str | None = None
    action_id: str | None = None
    trigger_type: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    action_type: str | None = None
    input_data: dict[str, Any] | None = None
    output_data: dict[str, Any] | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None


@dataclass(frozen=True)
class ExecutionLogResult:
    """Automation log read-model."""

    id: str
    execution_id: str
    status: str
    workflow_id: str | None
    trigger_id: str | None
    action_id: str | None
    trigger_type: str | None
    entity_type: str | None
    entity_id: str | None
    action_type: str | None
    input_data: dict[str, Any] | None
    output_data: dict[str, Any] | None
    error_message: str | None
    started_at: datetime | None
    completed_at: datetime | None
    duration_ms: int | None
    created_at: datetime


@dataclass(frozen=True)
class ExecutionLogFilter:
    """Filters for listing automation logs (all optional)."""

    workflow_id: str | None = None
    status: str | None = None
    action_type: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None


@dataclass(frozen=True)
class ScheduledJobCreate:
    """New scheduled job. cron_expression None means one-shot."""

    workflow_id: str
    trigger_id: str | None
    next_run_at: datetime
    cron_expression: str | None = None
    timezone: str = "UTC"
    payload: dict[str, Any] | None = None


@dataclass(frozen=True)
class ScheduledJobResult:
    """Scheduled job read-model (workflow_name joined for logging)."""

    id: str
    workflow_id: str
    trigger_id: str | None
    next_run_at: datetime
    last_run_at: datetime | None
    cron_expression: str | None
    timezone: str
    is_active: bool
    payload: dict[str, Any] | None = None
    workflow_name: str | None = None

    @property
    def is_recurring(self) -> bool:
        return self.cron_expression is not None


@dataclass(frozen=True)
class FollowUpCreate:
    """Task or reminder created by an action."""

    kind: str
    title: str
    due_at: datetime
    workflow_id: str | None = None
    execution_id: str | None = None
    description: str | None = None
    assigned_to: str | None = None
    priority: str = "normal"
    entity_type: str | None = None
    entity_id: str | None = None


@dataclass(frozen=True)
class FollowUpResult:
    id: str
    kind: str
    title: str
    due_at: datetime
    workflow_id: str | None
    execution_id: str | None
    description: str | None
    assigned_to: str | None
    priority: str
    entity_type: str | None
    entity_id: str | None
    created_at: datetime


@dataclass(frozen=True)
class AdmissionDecision:
    """Whether the scheduler may run a workflow now (cooldown and daily cap)."""

    allowed: bool
    reason: str | None = None


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one action in a run."""

    action_id: str
    action_type: str
    status: str
    output: dict[str, Any] | None = None
    error: str | None = None
    reason: str | None = None
    scheduled_for: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.scheduled_for is not None:
            data["scheduled_for"] = self.scheduled_for.isoformat()
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class WorkflowRunResult:
    """Outcome of one execute_workflow call."""

    success: bool
    execution_id: str
    workflow_id: str
    workflow_name: str | None = None
    skipped: bool = False
    reason: str | None = None
    error: str | None = None
    results: list[ActionResult] = field(default_factory=list)
    duration_ms: int | None = None


@dataclass(frozen=True)
class ExecutionSummary:
    """All rows of one execution with a derived overall status."""

    execution_id: str
    status: str
    workflow_id: str | None
    trigger_type: str | None
    entity_type: str | None
    entity_id: str | None
    started_at: datetime | None
    completed_at: datetime | None
    logs: list[ExecutionLogResult] = field(default_factory=list)


@dataclass(frozen=True)
class LogStatusCounts:
    total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    avg_duration_ms: float | None = None
    max_duration_ms: int | None = None
    min_duration_ms: int | None = None


@dataclass(frozen=True)
class ActionTypeStats:
    action_type: str
    total: int
    completed: int
    failed: int
    avg_duration_ms: float | None = None


@dataclass(frozen=True)
class ExecutionLogStats:
    """Aggregates over automation logs for a trailing period."""

    period_days: int
    overall: LogStatusCounts
    success_rate: float
    by_action_type: list[ActionTypeStats] = field(default_factory=list)
