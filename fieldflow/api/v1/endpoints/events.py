"""Business event API: emit into the bus, inspect bus state."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from fieldflow.api.v1.dependencies import get_event_bus
from fieldflow.application.services.event_bus import EventBus
from fieldflow.core.limiter import limit_events
from fieldflow.schemas.event import (
    EventBusStatsResponse,
    EventEmitRequest,
    EventEmitResponse,
)

router = APIRouter()


@router.post("", response_model=EventEmitResponse, status_code=202)
@limit_events
async def emit_event(
    request: Request,
    body: EventEmitRequest,
    bus: Annotated[EventBus, Depends(get_event_bus)],
) -> EventEmitResponse:
    """Emit a business event; duplicates inside the idempotency window come back skipped."""
    result = await bus.emit(body.event_type, body.entity_data)
    return EventEmitResponse.model_validate(result)


@router.get("/stats", response_model=EventBusStatsResponse)
async def event_bus_stats(
    bus: Annotated[EventBus, Depends(get_event_bus)],
) -> EventBusStatsResponse:
    return EventBusStatsResponse(**await bus.stats())
