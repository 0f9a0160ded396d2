"""Automation log repository (append-only audit trail)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldflow.application.dtos.automation import (
    ActionTypeStats,
    ExecutionLogCreate,
    ExecutionLogFilter,
    ExecutionLogResult,
    LogStatusCounts,
)
from fieldflow.infrastructure.persistence.models.automation import AutomationLog
from fieldflow.shared.enums import ExecutionStatus


def _to_result(log: AutomationLog) -> ExecutionLogResult:
    """Map AutomationLog ORM to ExecutionLogResult DTO."""
    return ExecutionLogResult(
        id=log.id,
        execution_id=log.execution_id,
        status=log.status,
        workflow_id=log.workflow_id,
        trigger_id=log.trigger_id,
        action_id=log.action_id,
        trigger_type=log.trigger_type,
        entity_type=log.triggered_by_entity_type,
        entity_id=log.triggered_by_entity_id,
        action_type=log.action_type,
        input_data=log.input_data,
        output_data=log.output_data,
        error_message=log.error_message,
        started_at=log.started_at,
        completed_at=log.completed_at,
        duration_ms=log.duration_ms,
        created_at=log.created_at,
    )


class ExecutionLogRepository:
    """Automation log repository. Rows are inserted, never updated."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def insert(self, entry: ExecutionLogCreate) -> str:
        log = AutomationLog(
            execution_id=entry.execution_id,
            status=entry.status,
            workflow_id=entry.workflow_id,
            trigger_id=entry.trigger_id,
            action_id=entry.action_id,
            trigger_type=entry.trigger_type,
            triggered_by_entity_type=entry.entity_type,
            triggered_by_entity_id=entry.entity_id,
            action_type=entry.action_type,
            input_data=entry.input_data,
            output_data=entry.output_data,
            error_message=entry.error_message,
            started_at=entry.started_at,
            completed_at=entry.completed_at,
            duration_ms=entry.duration_ms,
        )
        self.db.add(log)
        await self.db.flush()
        return log.id

    async def get_last_run_started_at(self, workflow_id: str) -> datetime | None:
        result = await self.db.execute(
            select(func.max(AutomationLog.started_at)).where(
                AutomationLog.workflow_id == workflow_id,
                AutomationLog.action_id.is_(None),
                AutomationLog.status.in_(
                    [ExecutionStatus.COMPLETED.value, ExecutionStatus.RUNNING.value]
                ),
            )
        )
        return result.scalar_one_or_none()

    async def count_completed_runs_since(self, workflow_id: str, since: datetime) -> int:
        result = await self.db.execute(
            select(func.count(AutomationLog.id)).where(
                AutomationLog.workflow_id == workflow_id,
                AutomationLog.action_id.is_(None),
                AutomationLog.status == ExecutionStatus.COMPLETED.value,
                AutomationLog.started_at >= since,
            )
        )
        return int(result.scalar_one() or 0)

    async def list_logs(
        self, filters: ExecutionLogFilter, skip: int = 0, limit: int = 100
    ) -> list[ExecutionLogResult]:
        q = select(AutomationLog)
        if filters.workflow_id:
            q = q.where(AutomationLog.workflow_id == filters.workflow_id)
        if filters.status:
            q = q.where(AutomationLog.status == filters.status)
        if filters.action_type:
            q = q.where(AutomationLog.action_type == filters.action_type)
        if filters.entity_type:
            q = q.where(AutomationLog.triggered_by_entity_type == filters.entity_type)
        if filters.entity_id:
            q = q.where(AutomationLog.triggered_by_entity_id == filters.entity_id)
        q = q.order_by(AutomationLog.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(q)
        return [_to_result(log) for log in result.scalars().all()]

    async def get_by_execution(self, execution_id: str) -> list[ExecutionLogResult]:
        result = await self.db.execute(
            select(AutomationLog)
            .where(AutomationLog.execution_id == execution_id)
            .order_by(AutomationLog.created_at.asc())
        )
        return [_to_result(log) for log in result.scalars().all()]

    async def get_stats(
        self, since: datetime, workflow_id: str | None = None
    ) -> tuple[LogStatusCounts, list[ActionTypeStats]]:
        """Status counts overall and per action type for rows created since."""
        completed = ExecutionStatus.COMPLETED.value
        failed = ExecutionStatus.FAILED.value
        skipped = ExecutionStatus.SKIPPED.value
        conditions = [AutomationLog.created_at >= since]
        if workflow_id:
            conditions.append(AutomationLog.workflow_id == workflow_id)

        overall_row = (
            await self.db.execute(
                select(
                    func.count(AutomationLog.id),
                    func.count(case((AutomationLog.status == completed, 1))),
                    func.count(case((AutomationLog.status == failed, 1))),
                    func.count(case((AutomationLog.status == skipped, 1))),
                    func.avg(AutomationLog.duration_ms),
                    func.max(AutomationLog.duration_ms),
                    func.min(AutomationLog.duration_ms),
                ).where(*conditions)
            )
        ).one()
        overall = LogStatusCounts(
            total=overall_row[0] or 0,
            completed=overall_row[1] or 0,
            failed=overall_row[2] or 0,
            skipped=overall_row[3] or 0,
            avg_duration_ms=float(overall_row[4]) if overall_row[4] is not None else None,
            max_duration_ms=overall_row[5],
            min_duration_ms=overall_row[6],
        )

        total = func.count(AutomationLog.id).label("total")
        by_type = await self.db.execute(
            select(
                AutomationLog.action_type,
                total,
                func.count(case((AutomationLog.status == completed, 1))),
                func.count(case((AutomationLog.status == failed, 1))),
                func.avg(AutomationLog.duration_ms),
            )
            .where(AutomationLog.action_type.is_not(None), *conditions)
            .group_by(AutomationLog.action_type)
            .order_by(total.desc())
        )
        action_stats = [
            ActionTypeStats(
                action_type=row[0],
                total=row[1],
                completed=row[2],
                failed=row[3],
                avg_duration_ms=float(row[4]) if row[4] is not None else None,
            )
            for row in by_type.all()
        ]
        return overall, action_stats
