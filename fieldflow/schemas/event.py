"""Business event API schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventEmitRequest(BaseModel):
    """Payload for POST /events. Unknown event types are accepted and logged."""

    event_type: str = Field(..., min_length=1, max_length=100)
    entity_data: dict[str, Any] = Field(default_factory=dict)


class EventEmitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    emitted: bool
    event_id: str | None = None
    skipped: bool = False
    reason: str | None = None


class EventBusStatsResponse(BaseModel):
    """Idempotency window size and listener counts."""

    idempotency_records_count: int
    listener_counts: dict[str, int]
    total_listeners: int
