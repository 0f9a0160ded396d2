"""Job state transition repository: history rows plus jobs.status update."""

from __future__ import annotations

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from fieldflow.domain.exceptions import ResourceNotFoundException
from fieldflow.infrastructure.persistence.models.job_transition import JobStateTransition


class JobTransitionRepository:
    """Writes job_state_transitions and the job row in the caller's transaction."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def record(
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
        """Insert the transition and update jobs.status; return the updated job row."""
        self.db.add(
            JobStateTransition(
                job_id=job_id,
                from_state=from_state,
                to_state=to_state,
                changed_by=changed_by,
                changed_by_role=changed_by_role,
                change_source=change_source,
                reason=reason,
                notes=notes,
            )
        )
        await self.db.flush()
        result = await self.db.execute(
            text(
                "UPDATE jobs SET status = :status, updated_at = NOW() "
                "WHERE id = :id RETURNING *"
            ),
            {"status": to_state, "id": job_id},
        )
        row = result.mappings().first()
        if row is None:
            raise ResourceNotFoundException("Job", job_id)
        return dict(row)
