"""Session-scoped adapters implementing the application ports.

The engine and scheduler are long-lived, so each port call opens its own
session and short transaction from the session factory.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

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
from fieldflow.infrastructure.persistence.repositories.entity_gateway_repo import (
    EntityGatewayRepository,
)
from fieldflow.infrastructure.persistence.repositories.execution_log_repo import (
    ExecutionLogRepository,
)
from fieldflow.infrastructure.persistence.repositories.follow_up_repo import FollowUpRepository
from fieldflow.infrastructure.persistence.repositories.job_transition_repo import (
    JobTransitionRepository,
)
from fieldflow.infrastructure.persistence.repositories.scheduled_job_repo import (
    ScheduledJobRepository,
)
from fieldflow.infrastructure.persistence.repositories.workflow_repo import WorkflowRepository


class _SessionScoped:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            async with session.begin():
                yield session


class SqlAutomationStore(_SessionScoped):
    """IAutomationStore over PostgreSQL."""

    async def get_active_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        async with self._transaction() as session:
            return await WorkflowRepository(session).get_active(workflow_id)

    async def list_workflows_for_trigger(self, trigger_type: str) -> list[WorkflowDefinition]:
        async with self._transaction() as session:
            return await WorkflowRepository(session).list_for_trigger(trigger_type)

    async def list_schedule_triggers(self) -> list[Trigger]:
        async with self._transaction() as session:
            return await WorkflowRepository(session).list_schedule_triggers()

    async def insert_log(self, entry: ExecutionLogCreate) -> str:
        async with self._transaction() as session:
            return await ExecutionLogRepository(session).insert(entry)

    async def get_last_run_started_at(self, workflow_id: str) -> datetime | None:
        async with self._transaction() as session:
            return await ExecutionLogRepository(session).get_last_run_started_at(workflow_id)

    async def count_completed_runs_since(self, workflow_id: str, since: datetime) -> int:
        async with self._transaction() as session:
            return await ExecutionLogRepository(session).count_completed_runs_since(
                workflow_id, since
            )

    async def list_logs(
        self, filters: ExecutionLogFilter, skip: int = 0, limit: int = 100
    ) -> list[ExecutionLogResult]:
        async with self._transaction() as session:
            return await ExecutionLogRepository(session).list_logs(filters, skip, limit)

    async def get_execution_logs(self, execution_id: str) -> list[ExecutionLogResult]:
        async with self._transaction() as session:
            return await ExecutionLogRepository(session).get_by_execution(execution_id)

    async def get_log_stats(
        self, since: datetime, workflow_id: str | None = None
    ) -> tuple[LogStatusCounts, list[ActionTypeStats]]:
        async with self._transaction() as session:
            return await ExecutionLogRepository(session).get_stats(since, workflow_id)

    async def list_due_jobs(self, now: datetime, limit: int) -> list[ScheduledJobResult]:
        async with self._transaction() as session:
            return await ScheduledJobRepository(session).list_due(now, limit)

    async def create_scheduled_job(self, data: ScheduledJobCreate) -> ScheduledJobResult:
        async with self._transaction() as session:
            return await ScheduledJobRepository(session).create(data)

    async def set_job_next_run(self, job_id: str, next_run_at: datetime) -> None:
        async with self._transaction() as session:
            await ScheduledJobRepository(session).set_next_run(job_id, next_run_at)

    async def mark_job_run(
        self, job_id: str, ran_at: datetime, next_run_at: datetime | None
    ) -> None:
        async with self._transaction() as session:
            await ScheduledJobRepository(session).mark_run(job_id, ran_at, next_run_at)

    async def get_recurring_job_for_trigger(self, trigger_id: str) -> ScheduledJobResult | None:
        async with self._transaction() as session:
            return await ScheduledJobRepository(session).get_recurring_for_trigger(trigger_id)

    async def create_follow_up(self, data: FollowUpCreate) -> FollowUpResult:
        async with self._transaction() as session:
            return await FollowUpRepository(session).create(data)


class SqlEntityGateway(_SessionScoped):
    """IEntityGateway over the CRUD service's tables."""

    async def get_snapshot(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        async with self._transaction() as session:
            return await EntityGatewayRepository(session).get_snapshot(entity_type, entity_id)

    async def update_lead_stage(self, lead_id: str, stage: str) -> bool:
        async with self._transaction() as session:
            return await EntityGatewayRepository(session).update_lead_stage(lead_id, stage)

    async def update_job_status(self, job_id: str, status: str) -> bool:
        async with self._transaction() as session:
            return await EntityGatewayRepository(session).update_job_status(job_id, status)

    async def create_draft_invoice(
        self,
        *,
        job_id: str | None,
        client_id: str | None,
        amount: float | None,
        due_date: datetime,
        line_items: list[dict[str, Any]],
    ) -> str:
        async with self._transaction() as session:
            return await EntityGatewayRepository(session).create_draft_invoice(
                job_id=job_id,
                client_id=client_id,
                amount=amount,
                due_date=due_date,
                line_items=line_items,
            )


class SqlJobStateStore(_SessionScoped):
    """IJobStateStore: transition row and jobs.status in one transaction."""

    async def get_job_state(self, job_id: str) -> str | None:
        async with self._transaction() as session:
            return await EntityGatewayRepository(session).get_job_status(job_id)

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
        async with self._transaction() as session:
            return await JobTransitionRepository(session).record(
                job_id=job_id,
                from_state=from_state,
                to_state=to_state,
                changed_by=changed_by,
                changed_by_role=changed_by_role,
                change_source=change_source,
                reason=reason,
                notes=notes,
            )
