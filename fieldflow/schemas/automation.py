"""Workflow execution, automation log and scheduler API schemas."""

from typing import Any

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class WorkflowExecuteRequest(BaseModel):
    """Manual run of one workflow against an entity snapshot."""

    entity_type: str | None = Field(default=None, max_length=50)
    entity_id: str | None = Field(default=None, max_length=255)
    entity_data: dict[str, Any] = Field(default_factory=dict)
    triggered_by: str | None = Field(default=None, max_length=255)


class ActionResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    action_id: str
    action_type: str
    status: str
    output: dict[str, Any] | None = None
    error: str | None = None
    reason: str | None = None
    scheduled_for: AwareDatetime | None = None


class WorkflowRunResponse(BaseModel):
    """Outcome of one workflow run (completed, skipped or failed)."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    execution_id: str
    workflow_id: str
    workflow_name: str | None = None
    skipped: bool = False
    reason: str | None = None
    error: str | None = None
    results: list[ActionResultResponse] = Field(default_factory=list)
    duration_ms: int | None = None


class ExecutionLogResponse(BaseModel):
    """One automation_logs row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    execution_id: str
    status: str
    workflow_id: str | None = None
    trigger_id: str | None = None
    action_id: str | None = None
    trigger_type: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    action_type: str | None = None
    input_data: dict[str, Any] | None = None
    output_data: dict[str, Any] | None = None
    error_message: str | None = None
    started_at: AwareDatetime | None = None
    completed_at: AwareDatetime | None = None
    duration_ms: int | None = None
    created_at: AwareDatetime


class ExecutionSummaryResponse(BaseModel):
    """All rows of one execution with a derived overall status."""

    model_config = ConfigDict(from_attributes=True)

    execution_id: str
    status: str
    workflow_id: str | None = None
    trigger_type: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    started_at: AwareDatetime | None = None
    completed_at: AwareDatetime | None = None
    logs: list[ExecutionLogResponse] = Field(default_factory=list)


class LogStatusCountsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    completed: int
    failed: int
    skipped: int
    avg_duration_ms: float | None = None
    max_duration_ms: int | None = None
    min_duration_ms: int | None = None


class ActionTypeStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    action_type: str
    total: int
    completed: int
    failed: int
    avg_duration_ms: float | None = None


class ExecutionLogStatsResponse(BaseModel):
    """Aggregates over automation_logs for the last period_days days."""

    model_config = ConfigDict(from_attributes=True)

    period_days: int
    overall: LogStatusCountsResponse
    success_rate: float
    by_action_type: list[ActionTypeStatsResponse] = Field(default_factory=list)


class SchedulerStatusResponse(BaseModel):
    is_running: bool
    poll_interval_seconds: float
    batch_size: int
    has_workflow_engine: bool


class SchedulerPollResponse(BaseModel):
    processed_jobs: int
