"""Follow-up (task and reminder) repository for create_task / create_reminder actions."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from fieldflow.application.dtos.automation import FollowUpCreate, FollowUpResult
from fieldflow.infrastructure.persistence.models.automation import AutomationFollowUp


def _to_result(f: AutomationFollowUp) -> FollowUpResult:
    """Map AutomationFollowUp ORM to FollowUpResult DTO."""
    return FollowUpResult(
        id=f.id,
        kind=f.kind,
        title=f.title,
        due_at=f.due_at,
        workflow_id=f.workflow_id,
        execution_id=f.execution_id,
        description=f.description,
        assigned_to=f.assigned_to,
        priority=f.priority,
        entity_type=f.entity_type,
        entity_id=f.entity_id,
        created_at=f.created_at,
    )


class FollowUpRepository:
    """Follow-up repository."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, data: FollowUpCreate) -> FollowUpResult:
        """Create a task or reminder and return the result DTO."""
        follow_up = AutomationFollowUp(
            kind=data.kind,
            title=data.title,
            description=data.description,
            due_at=data.due_at,
            assigned_to=data.assigned_to,
            priority=data.priority,
            workflow_id=data.workflow_id,
            execution_id=data.execution_id,
            entity_type=data.entity_type,
            entity_id=data.entity_id,
        )
        self.db.add(follow_up)
        await self.db.flush()
        await self.db.refresh(follow_up)
        return _to_result(follow_up)
