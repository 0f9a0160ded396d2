"""Automation log API: audit trail listing, grouped execution view, stats."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from fieldflow.api.v1.dependencies import get_log_queries
from fieldflow.application.dtos.automation import ExecutionLogFilter
from fieldflow.application.use_cases.execution_logs import ExecutionLogQueries
from fieldflow.schemas.automation import (
    ExecutionLogResponse,
    ExecutionLogStatsResponse,
    ExecutionSummaryResponse,
)

router = APIRouter()


@router.get("", response_model=list[ExecutionLogResponse])
async def list_automation_logs(
    queries: Annotated[ExecutionLogQueries, Depends(get_log_queries)],
    workflow_id: str | None = None,
    status: str | None = None,
    action_type: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> list[ExecutionLogResponse]:
    """Log rows, newest first."""
    logs = await queries.list_logs(
        ExecutionLogFilter(
            workflow_id=workflow_id,
            status=status,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=entity_id,
        ),
        skip=skip,
        limit=limit,
    )
    return [ExecutionLogResponse.model_validate(log) for log in logs]


@router.get("/stats", response_model=ExecutionLogStatsResponse)
async def automation_log_stats(
    queries: Annotated[ExecutionLogQueries, Depends(get_log_queries)],
    days: int = Query(30, ge=1, le=365),
    workflow_id: str | None = None,
) -> ExecutionLogStatsResponse:
    stats = await queries.get_stats(days=days, workflow_id=workflow_id)
    return ExecutionLogStatsResponse.model_validate(stats)


@router.get("/{execution_id}", response_model=ExecutionSummaryResponse)
async def get_execution(
    execution_id: str,
    queries: Annotated[ExecutionLogQueries, Depends(get_log_queries)],
) -> ExecutionSummaryResponse:
    """All rows of one execution, oldest first, with the derived overall status."""
    summary = await queries.get_execution(execution_id)
    return ExecutionSummaryResponse.model_validate(summary)
