"""Execution log queries: filtered listing, grouped execution view, stats."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from fieldflow.application.dtos.automation import (
    ExecutionLogFilter,
    ExecutionLogResult,
    ExecutionLogStats,
    ExecutionSummary,
)
from fieldflow.domain.exceptions import ResourceNotFoundException
from fieldflow.shared.enums import ExecutionStatus
from fieldflow.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from fieldflow.application.interfaces.repositories import IAutomationStore

_SETTLED = frozenset(
    {
        ExecutionStatus.COMPLETED.value,
        ExecutionStatus.SKIPPED.value,
        ExecutionStatus.SCHEDULED.value,
    }
)


def summarize_status(logs: list[ExecutionLogResult]) -> str:
    """Overall status of an execution.

    The newest run-level row (no action_id) wins; without one, any failed row
    means failed, all settled rows mean completed, anything else is running.
    """
    run_rows = [log for log in logs if log.action_id is None]
    if run_rows:
        return run_rows[-1].status
    if any(log.status == ExecutionStatus.FAILED.value for log in logs):
        return ExecutionStatus.FAILED.value
    if all(log.status in _SETTLED for log in logs):
        return ExecutionStatus.COMPLETED.value
    return ExecutionStatus.RUNNING.value


class ExecutionLogQueries:
    """Read-only access to the automation audit trail."""

    def __init__(self, store: "IAutomationStore") -> None:
        self.store = store

    async def list_logs(
        self, filters: ExecutionLogFilter, skip: int = 0, limit: int = 100
    ) -> list[ExecutionLogResult]:
        return await self.store.list_logs(filters, skip, limit)

    async def get_execution(self, execution_id: str) -> ExecutionSummary:
        """Grouped view of one execution. Raises ResourceNotFoundException when no rows exist."""
        logs = await self.store.get_execution_logs(execution_id)
        if not logs:
            raise ResourceNotFoundException("Execution", execution_id)
        first, last = logs[0], logs[-1]
        return ExecutionSummary(
            execution_id=execution_id,
            status=summarize_status(logs),
            workflow_id=first.workflow_id,
            trigger_type=first.trigger_type,
            entity_type=first.entity_type,
            entity_id=first.entity_id,
            started_at=first.started_at,
            completed_at=last.completed_at,
            logs=logs,
        )

    async def get_stats(self, days: int = 30, workflow_id: str | None = None) -> ExecutionLogStats:
        since = utc_now() - timedelta(days=days)
        overall, by_action_type = await self.store.get_log_stats(since, workflow_id)
        success_rate = (
            round(overall.completed / overall.total * 100, 2) if overall.total else 0.0
        )
        return ExecutionLogStats(
            period_days=days,
            overall=overall,
            success_rate=success_rate,
            by_action_type=by_action_type,
        )
