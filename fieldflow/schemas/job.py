"""Job lifecycle API schemas."""

from typing import Any

from pydantic import BaseModel, Field

from fieldflow.schemas.event import EventEmitResponse


class JobTransitionRequest(BaseModel):
    """Move a job to to_state; rejected with 409 when the matrix forbids it."""

    to_state: str = Field(..., min_length=1, max_length=50)
    changed_by: str | None = Field(default=None, max_length=255)
    changed_by_role: str | None = Field(default=None, max_length=50)
    reason: str | None = Field(default=None, max_length=500)
    notes: str | None = None


class JobTransitionResponse(BaseModel):
    job_id: str
    to_state: str
    job: dict[str, Any]
    event: EventEmitResponse


class AllowedTransitionsResponse(BaseModel):
    job_id: str
    allowed_states: list[str]
