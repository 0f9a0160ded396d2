"""Scheduler API: poll loop status and on-demand tick."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from fieldflow.api.v1.dependencies import get_scheduler
from fieldflow.application.services.scheduler import Scheduler
from fieldflow.core.limiter import limit_writes
from fieldflow.schemas.automation import SchedulerPollResponse, SchedulerStatusResponse

router = APIRouter()


@router.get("/status", response_model=SchedulerStatusResponse)
def scheduler_status(
    scheduler: Annotated[Scheduler, Depends(get_scheduler)],
) -> SchedulerStatusResponse:
    return SchedulerStatusResponse(**scheduler.status())


@router.post("/poll", response_model=SchedulerPollResponse)
@limit_writes
async def run_poll(
    request: Request,
    scheduler: Annotated[Scheduler, Depends(get_scheduler)],
) -> SchedulerPollResponse:
    """Run one poll tick now. Returns 0 while a tick is already in progress."""
    return SchedulerPollResponse(processed_jobs=await scheduler.poll())
