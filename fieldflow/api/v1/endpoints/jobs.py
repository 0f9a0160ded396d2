"""Job lifecycle API: state machine transitions."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from fieldflow.api.v1.dependencies import get_job_state_machine
from fieldflow.application.services.job_state_machine import JobStateMachine
from fieldflow.core.limiter import limit_writes
from fieldflow.domain.enums import ChangeSource
from fieldflow.schemas.event import EventEmitResponse
from fieldflow.schemas.job import (
    AllowedTransitionsResponse,
    JobTransitionRequest,
    JobTransitionResponse,
)

router = APIRouter()


@router.get("/{job_id}/allowed-transitions", response_model=AllowedTransitionsResponse)
async def allowed_transitions(
    job_id: str,
    machine: Annotated[JobStateMachine, Depends(get_job_state_machine)],
) -> AllowedTransitionsResponse:
    return AllowedTransitionsResponse(
        job_id=job_id, allowed_states=await machine.get_allowed_transitions(job_id)
    )


@router.post("/{job_id}/transitions", response_model=JobTransitionResponse, status_code=201)
@limit_writes
async def transition_job(
    request: Request,
    job_id: str,
    body: JobTransitionRequest,
    machine: Annotated[JobStateMachine, Depends(get_job_state_machine)],
) -> JobTransitionResponse:
    """Apply one transition and emit the matching job event."""
    job, emitted = await machine.transition(
        job_id,
        body.to_state,
        changed_by=body.changed_by,
        changed_by_role=body.changed_by_role,
        reason=body.reason,
        notes=body.notes,
        change_source=ChangeSource.API,
    )
    return JobTransitionResponse(
        job_id=job_id,
        to_state=body.to_state,
        job=job,
        event=EventEmitResponse.model_validate(emitted),
    )
