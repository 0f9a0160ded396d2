"""Job state machine: validated, persisted transitions that emit job_* events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fieldflow.domain.entities.job import allowed_next_states, can_transition, event_for_state
from fieldflow.domain.enums import ChangeSource, JobState
from fieldflow.domain.exceptions import (
    InvalidJobTransitionException,
    ResourceNotFoundException,
    ValidationException,
)
from fieldflow.shared.telemetry.logging import get_logger
from fieldflow.shared.telemetry.tracing import traced

if TYPE_CHECKING:
    from fieldflow.application.dtos.automation import EmitResult
    from fieldflow.application.interfaces.repositories import IJobStateStore
    from fieldflow.application.interfaces.services import IEventPublisher

logger = get_logger(__name__)


class JobStateMachine:
    """Moves field jobs between lifecycle states.

    A successful transition writes an immutable job_state_transitions row,
    updates jobs.status and emits the business event for the new state so
    the workflow engine can react to it.
    """

    def __init__(self, state_store: IJobStateStore, publisher: IEventPublisher) -> None:
        self.state_store = state_store
        self.publisher = publisher

    async def get_allowed_transitions(self, job_id: str) -> list[str]:
        current = await self._current_state(job_id)
        return [state.value for state in allowed_next_states(current)]

    @traced("job_state_machine.transition")
    async def transition(
        self,
        job_id: str,
        to_state: str,
        *,
        changed_by: str | None = None,
        changed_by_role: str | None = None,
        reason: str | None = None,
        notes: str | None = None,
        change_source: ChangeSource = ChangeSource.MANUAL,
    ) -> tuple[dict[str, Any], EmitResult]:
        """Apply one transition; returns the updated job row and the emit outcome.

        Raises:
            ValidationException: to_state is not a job state.
            ResourceNotFoundException: job does not exist.
            InvalidJobTransitionException: the move is not allowed from the current state.
        """
        try:
            target = JobState(to_state)
        except ValueError as e:
            raise ValidationException(f"Unknown job state: {to_state}", field="to_state") from e

        current = await self._current_state(job_id)
        if not can_transition(current, target):
            raise InvalidJobTransitionException(job_id, current.value, target.value)

        job = await self.state_store.save_transition(
            job_id=job_id,
            from_state=current.value,
            to_state=target.value,
            changed_by=changed_by,
            changed_by_role=changed_by_role,
            change_source=change_source.value,
            reason=reason,
            notes=notes,
        )
        logger.info("Job %s transitioned %s -> %s", job_id, current.value, target.value)

        event_data = {
            **job,
            "id": job_id,
            "from_state": current.value,
            "to_state": target.value,
            "changed_by": changed_by,
            "reason": reason,
        }
        emitted = await self.publisher.emit(event_for_state(target), event_data)
        return job, emitted

    async def _current_state(self, job_id: str) -> JobState:
        raw = await self.state_store.get_job_state(job_id)
        if raw is None:
            raise ResourceNotFoundException("Job", job_id)
        try:
            return JobState(raw)
        except ValueError as e:
            raise ValidationException(
                f"Job {job_id} has unknown status: {raw}", field="status"
            ) from e
