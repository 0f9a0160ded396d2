"""Scheduled job repository (cron and one-shot delayed jobs)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fieldflow.application.dtos.automation import ScheduledJobCreate, ScheduledJobResult
from fieldflow.infrastructure.persistence.models.automation import (
    AutomationScheduledJob,
    AutomationWorkflow,
)


def _to_result(
    job: AutomationScheduledJob, workflow_name: str | None = None
) -> ScheduledJobResult:
    """Map AutomationScheduledJob ORM to ScheduledJobResult DTO."""
    return ScheduledJobResult(
        id=job.id,
        workflow_id=job.workflow_id,
        trigger_id=job.trigger_id,
        next_run_at=job.next_run_at,
        last_run_at=job.last_run_at,
        cron_expression=job.cron_expression,
        timezone=job.timezone,
        is_active=job.is_active,
        payload=job.payload,
        workflow_name=workflow_name,
    )


class ScheduledJobRepository:
    """Scheduled job repository."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_due(self, now: datetime, limit: int) -> list[ScheduledJobResult]:
        """Active jobs with next_run_at <= now on runnable workflows, oldest first."""
        result = await self.db.execute(
            select(AutomationScheduledJob, AutomationWorkflow.name)
            .join(AutomationWorkflow, AutomationWorkflow.id == AutomationScheduledJob.workflow_id)
            .where(
                AutomationScheduledJob.is_active.is_(True),
                AutomationScheduledJob.next_run_at <= now,
                AutomationWorkflow.is_active.is_(True),
                AutomationWorkflow.deleted_at.is_(None),
            )
            .order_by(AutomationScheduledJob.next_run_at.asc())
            .limit(limit)
        )
        return [_to_result(job, name) for job, name in result.all()]

    async def create(self, data: ScheduledJobCreate) -> ScheduledJobResult:
        job = AutomationScheduledJob(
            workflow_id=data.workflow_id,
            trigger_id=data.trigger_id,
            next_run_at=data.next_run_at,
            cron_expression=data.cron_expression,
            timezone=data.timezone,
            payload=data.payload,
            is_active=True,
        )
        self.db.add(job)
        await self.db.flush()
        await self.db.refresh(job)
        return _to_result(job)

    async def set_next_run(self, job_id: str, next_run_at: datetime) -> None:
        await self.db.execute(
            update(AutomationScheduledJob)
            .where(AutomationScheduledJob.id == job_id)
            .values(next_run_at=next_run_at)
        )

    async def mark_run(
        self, job_id: str, ran_at: datetime, next_run_at: datetime | None
    ) -> None:
        """Record the run; advance recurring jobs, deactivate one-shot jobs."""
        values: dict = {"last_run_at": ran_at}
        if next_run_at is None:
            values["is_active"] = False
        else:
            values["next_run_at"] = next_run_at
        await self.db.execute(
            update(AutomationScheduledJob)
            .where(AutomationScheduledJob.id == job_id)
            .values(**values)
        )

    async def get_recurring_for_trigger(self, trigger_id: str) -> ScheduledJobResult | None:
        result = await self.db.execute(
            select(AutomationScheduledJob).where(
                AutomationScheduledJob.trigger_id == trigger_id,
                AutomationScheduledJob.cron_expression.is_not(None),
                AutomationScheduledJob.is_active.is_(True),
            )
        )
        job = result.scalars().first()
        return _to_result(job) if job is not None else None
