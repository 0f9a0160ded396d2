"""Scheduler: poll loop for cron triggers and deferred one-shot actions.

Each tick loads due jobs (oldest first, bounded batch), checks the
workflow's cooldown and daily cap, runs admitted jobs through the
workflow engine and then advances recurring jobs or deactivates one-shot
jobs. A single scheduler instance per deployment is assumed: admission is
read-then-act.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from fieldflow.application.dtos.automation import (
    AdmissionDecision,
    ExecutionLogCreate,
    ScheduledJobCreate,
    ScheduledJobResult,
    WorkflowRunResult,
)
from fieldflow.domain.exceptions import CronExpressionException
from fieldflow.domain.value_objects.cron import CronSchedule
from fieldflow.shared.enums import SCHEDULE_TRIGGER_TYPE, ExecutionStatus
from fieldflow.shared.telemetry.tracing import add_span_attributes, traced
from fieldflow.shared.utils.datetime import ensure_utc, start_of_utc_day, utc_now
from fieldflow.shared.utils.generators import generate_cuid

if TYPE_CHECKING:
    from fieldflow.application.interfaces.repositories import IAutomationStore
    from fieldflow.application.interfaces.services import IWorkflowRunner

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 60.0
DEFAULT_POLL_BATCH_SIZE = 10
FALLBACK_DELAY = timedelta(hours=24)


def calculate_next_run(
    cron_expression: str, now: datetime, timezone: str = "UTC"
) -> datetime:
    """Next minute after now matching cron_expression in timezone (UTC result).

    Falls back to now + 24h, with a warning, when the expression cannot be
    parsed or nothing matches within the search horizon.
    """
    try:
        next_run = CronSchedule.parse(cron_expression).next_after(now, timezone)
    except CronExpressionException as e:
        logger.warning("Error parsing cron expression: %s", e.message)
        return ensure_utc(now) + FALLBACK_DELAY
    if next_run is None:
        logger.warning("Could not calculate next run for cron: %s", cron_expression)
        return ensure_utc(now) + FALLBACK_DELAY
    return next_run


class Scheduler:
    """Cron and delayed-action poller (one asyncio task)."""

    def __init__(
        self,
        store: IAutomationStore,
        *,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        batch_size: int = DEFAULT_POLL_BATCH_SIZE,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.poll_interval_seconds = poll_interval_seconds
        self.batch_size = batch_size
        self._clock = clock
        self._engine: IWorkflowRunner | None = None
        self._task: asyncio.Task | None = None
        self._poll_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, engine: IWorkflowRunner) -> None:
        """Attach the engine and start polling (first poll runs immediately)."""
        if self.is_running:
            logger.warning("Scheduler already running")
            return
        self._engine = engine
        self._task = asyncio.create_task(self._run_loop(), name="fieldflow-scheduler")
        logger.info("Scheduler started with %ss poll interval", self.poll_interval_seconds)

    async def stop(self) -> None:
        """Cancel the poll task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Scheduler stopped")

    def status(self) -> dict[str, Any]:
        return {
            "is_running": self.is_running,
            "poll_interval_seconds": self.poll_interval_seconds,
            "batch_size": self.batch_size,
            "has_workflow_engine": self._engine is not None,
        }

    async def _run_loop(self) -> None:
        while True:
            await self.poll()
            await asyncio.sleep(self.poll_interval_seconds)

    @traced("scheduler.poll")
    async def poll(self) -> int:
        """Run one tick; returns the number of due jobs handled."""
        if self._engine is None:
            logger.warning("Workflow engine not set, skipping poll")
            return 0
        if self._poll_lock.locked():
            logger.debug("Previous poll still running, skipping tick")
            return 0
        async with self._poll_lock:
            try:
                jobs = await self.store.list_due_jobs(self._clock(), self.batch_size)
            except Exception:
                logger.exception("Error polling scheduled jobs")
                return 0
            if not jobs:
                return 0
            logger.info("Found %s due scheduled job(s)", len(jobs))
            add_span_attributes(due_jobs=len(jobs))
            for job in jobs:
                await self.execute_scheduled_job(job)
            return len(jobs)

    async def check_cooldown(self, workflow_id: str) -> AdmissionDecision:
        """Admission control: workflow runnable, cooldown elapsed, daily cap not reached."""
        workflow = await self.store.get_active_workflow(workflow_id)
        if workflow is None or not workflow.is_runnable:
            return AdmissionDecision(False, "Workflow not found or inactive")

        now = self._clock()
        if workflow.cooldown_minutes > 0:
            last_started = await self.store.get_last_run_started_at(workflow_id)
            if last_started is not None:
                cooldown_end = ensure_utc(last_started) + timedelta(
                    minutes=workflow.cooldown_minutes
                )
                if cooldown_end > now:
                    return AdmissionDecision(
                        False, f"Cooldown active until {cooldown_end.isoformat()}"
                    )

        if workflow.max_executions_per_day > 0:
            count = await self.store.count_completed_runs_since(
                workflow_id, start_of_utc_day(now)
            )
            if count >= workflow.max_executions_per_day:
                return AdmissionDecision(
                    False,
                    f"Max executions per day reached ({count}/{workflow.max_executions_per_day})",
                )

        return AdmissionDecision(True)

    async def execute_scheduled_job(self, job: ScheduledJobResult) -> WorkflowRunResult | None:
        """Admit, run and reschedule one due job. Errors become a failed log row.

        One-shot jobs are deactivated before the engine runs. If deactivation
        fails the job is not run and stays due; once it has run it never fires again.
        Recurring jobs advance after the run in a separately guarded step.
        """
        started_at = self._clock()
        try:
            logger.info(
                "Executing scheduled job: %s (%s)", job.workflow_name or job.workflow_id, job.id
            )
            decision = await self.check_cooldown(job.workflow_id)
            if not decision.allowed:
                logger.info("Skipping job %s: %s", job.id, decision.reason)
                if job.is_recurring:
                    await self.store.set_job_next_run(
                        job.id, self.calculate_next_run(job.cron_expression, job.timezone)
                    )
                return None

            if not job.is_recurring:
                await self.store.mark_job_run(job.id, started_at, None)
                logger.info("One-time job %s deactivated", job.id)

            context: dict[str, Any] = {
                **(job.payload or {}),
                "scheduled_job_id": job.id,
                "trigger_id": job.trigger_id,
                "scheduled_at": ensure_utc(job.next_run_at).isoformat(),
                "executed_at": started_at.isoformat(),
                "is_scheduled_execution": True,
            }
            if job.is_recurring:
                context.setdefault("trigger_type", SCHEDULE_TRIGGER_TYPE)

            result = await self._engine.execute_workflow(job.workflow_id, context)
        except Exception as e:
            logger.exception("Error executing scheduled job %s", job.id)
            await self._log_job_failure(job, e, started_at)
            result = None

        if job.is_recurring:
            await self._advance_recurring_job(job)
        return result

    async def _advance_recurring_job(self, job: ScheduledJobResult) -> None:
        try:
            next_run = self.calculate_next_run(job.cron_expression, job.timezone)
            await self.store.mark_job_run(job.id, self._clock(), next_run)
        except Exception as e:
            logger.exception("Could not reschedule recurring job %s", job.id)
            await self._log_job_failure(job, e, self._clock())
            return
        logger.info(
            "Next run for %s: %s", job.workflow_name or job.workflow_id, next_run.isoformat()
        )

    async def _log_job_failure(
        self, job: ScheduledJobResult, error: Exception, started_at: datetime
    ) -> None:
        try:
            await self.store.insert_log(
                ExecutionLogCreate(
                    execution_id=generate_cuid(),
                    status=ExecutionStatus.FAILED.value,
                    workflow_id=job.workflow_id,
                    trigger_id=job.trigger_id,
                    trigger_type=SCHEDULE_TRIGGER_TYPE,
                    error_message=str(error),
                    started_at=started_at,
                    completed_at=started_at,
                    duration_ms=0,
                )
            )
        except Exception:
            logger.exception("Could not record failure of scheduled job %s", job.id)

    def calculate_next_run(self, cron_expression: str, timezone: str = "UTC") -> datetime:
        return calculate_next_run(cron_expression, self._clock(), timezone)

    async def schedule_delayed_action(
        self,
        workflow_id: str,
        trigger_id: str | None,
        delay_minutes: int,
        context: dict[str, Any],
    ) -> tuple[str, datetime]:
        """Insert a one-shot job due in delay_minutes carrying the action and its context."""
        next_run_at = self._clock() + timedelta(minutes=delay_minutes)
        job = await self.store.create_scheduled_job(
            ScheduledJobCreate(
                workflow_id=workflow_id,
                trigger_id=trigger_id,
                next_run_at=next_run_at,
                cron_expression=None,
                timezone="UTC",
                payload=context,
            )
        )
        logger.info("Scheduled delayed action for %s", next_run_at.isoformat())
        return job.id, next_run_at

    async def sync_cron_triggers(self) -> int:
        """Create a recurring job for every active schedule trigger that has none."""
        created = 0
        for trigger in await self.store.list_schedule_triggers():
            cron_expression = trigger.cron_expression
            if not cron_expression:
                logger.warning("Schedule trigger %s has no cron_expression", trigger.id)
                continue
            if await self.store.get_recurring_job_for_trigger(trigger.id) is not None:
                continue
            await self.store.create_scheduled_job(
                ScheduledJobCreate(
                    workflow_id=trigger.workflow_id,
                    trigger_id=trigger.id,
                    next_run_at=self.calculate_next_run(cron_expression, trigger.timezone),
                    cron_expression=cron_expression,
                    timezone=trigger.timezone,
                )
            )
            created += 1
        if created:
            logger.info("Created %s recurring job(s) for schedule triggers", created)
        return created
