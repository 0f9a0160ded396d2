"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. Routes get
their services from fieldflow.api.v1.dependencies.
"""

from fastapi import APIRouter

from fieldflow.api.v1.endpoints import (
    automation_logs,
    events,
    health,
    jobs,
    scheduler,
    workflows,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
api_router.include_router(
    automation_logs.router, prefix="/automation-logs", tags=["automation-logs"]
)
api_router.include_router(scheduler.router, prefix="/scheduler", tags=["scheduler"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
