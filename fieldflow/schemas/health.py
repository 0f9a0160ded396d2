"""Health check API schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health (liveness)."""

    status: str = Field(default="ok", description="Service status")


class ReadinessResponse(BaseModel):
    """Response for GET /health/ready."""

    status: str = Field(default="ok", description="Readiness status")
    database: bool = Field(..., description="DATABASE_URL configured")
    automation: bool = Field(..., description="Automation runtime built")
    scheduler_running: bool = Field(..., description="Poll loop running in this process")


class ReadinessErrorResponse(BaseModel):
    """Response for GET /health/ready when the automation runtime is unavailable (503)."""

    status: str = Field(default="not_ready", description="Readiness status")
    message: str = Field(..., description="Reason (e.g. DATABASE_URL not set)")
