"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs or domain entities only; no infrastructure imports.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from fieldflow.application.dtos.automation import (
        ActionTypeStats,
        ExecutionLogCreate,
        ExecutionLogFilter,
        ExecutionLogResult,
        FollowUpCreate,
        FollowUpResult,
        LogStatusCounts,
        ScheduledJobCreate,
        ScheduledJobResult,
    )
    from fieldflow.domain.entities.workflow import Trigger, WorkflowDefinition


# Automation store interface
class IAutomationStore(Protocol):
    """Persistence for workflow definitions, execution logs, scheduled jobs and follow-ups.

    Each call is its own short transaction.
    """

    async def get_active_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        """Return the workflow with triggers and actions if active and not deleted."""

    async def list_workflows_for_trigger(self, trigger_type: str) -> list[WorkflowDefinition]:
        """Active, non-deleted workflows with at least one trigger of the type, sorted by name."""

    async def insert_log(self, entry: ExecutionLogCreate) -> str:
        """Append one automation log row; return its id."""

    async def get_last_run_started_at(self, workflow_id: str) -> datetime | None:
        """Latest started_at across run-level completed/running rows."""

    async def count_completed_runs_since(self, workflow_id: str, since: datetime) -> int:
        """Run-level completed rows with started_at >= since."""

    async def list_due_jobs(self, now: datetime, limit: int) -> list[ScheduledJobResult]:
        """Active jobs due at now whose workflow is runnable, oldest next_run_at first."""

    async def create_scheduled_job(self, data: ScheduledJobCreate) -> ScheduledJobResult:
        """Insert a scheduled job."""

    async def set_job_next_run(self, job_id: str, next_run_at: datetime) -> None:
        """Move next_run_at (recurring jobs, also when admission is denied)."""

    async def mark_job_run(
        self, job_id: str, ran_at: datetime, next_run_at: datetime | None
    ) -> None:
        """Record last_run_at; next_run_at None deactivates a one-shot job."""

    async def list_schedule_triggers(self) -> list[Trigger]:
        """Triggers of type 'schedule' on runnable workflows."""

    async def get_recurring_job_for_trigger(self, trigger_id: str) -> ScheduledJobResult | None:
        """Active recurring job for the trigger, if any."""

    async def list_logs(
        self, filters: ExecutionLogFilter, skip: int = 0, limit: int = 100
    ) -> list[ExecutionLogResult]:
        """Automation logs newest first."""

    async def get_execution_logs(self, execution_id: str) -> list[ExecutionLogResult]:
        """All rows of one execution, oldest first."""

    async def get_log_stats(
        self, since: datetime, workflow_id: str | None = None
    ) -> tuple[LogStatusCounts, list[ActionTypeStats]]:
        """Status counts and per-action-type counts for rows created since."""

    async def create_follow_up(self, data: FollowUpCreate) -> FollowUpResult:
        """Insert a task or reminder row."""


# Entity gateway interface
class IEntityGateway(Protocol):
    """Reads and mutations on business tables owned by other services (leads, jobs, invoices)."""

    async def get_snapshot(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        """Current row of the entity as a dict, or None."""

    async def update_lead_stage(self, lead_id: str, stage: str) -> bool:
        """Set leads.stage; return whether a row was updated."""

    async def update_job_status(self, job_id: str, status: str) -> bool:
        """Set jobs.status; return whether a row was updated."""

    async def create_draft_invoice(
        self,
        *,
        job_id: str | None,
        client_id: str | None,
        amount: float | None,
        due_date: datetime,
        line_items: list[dict[str, Any]],
    ) -> str:
        """Insert a Draft invoice; return its id."""


# Job state store interface
class IJobStateStore(Protocol):
    """Persistence used by the job state machine."""

    async def get_job_state(self, job_id: str) -> str | None:
        """Current jobs.status, or None if the job does not exist."""

    async def save_transition(
        self,
        *,
        job_id: str,
        from_state: str,
        to_state: str,
        changed_by: str | None,
        changed_by_role: str | None,
        change_source: str,
        reason: str | None,
        notes: str | None,
    ) -> dict[str, Any]:
        """Insert the transition row and update jobs.status atomically; return the job row."""
