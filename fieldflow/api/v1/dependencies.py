"""Presentation-layer dependency injection.

Routes depend on these providers, not on infrastructure. The automation
runtime is built once in the lifespan and held on app.state; it is None
when automation is disabled or DATABASE_URL is not set.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from fieldflow.application.services.event_bus import EventBus
from fieldflow.application.services.job_state_machine import JobStateMachine
from fieldflow.application.services.scheduler import Scheduler
from fieldflow.application.services.workflow_engine import WorkflowEngine
from fieldflow.application.use_cases.execution_logs import ExecutionLogQueries
from fieldflow.core.automation import AutomationRuntime
from fieldflow.domain.exceptions import SqlNotConfiguredException


def get_automation(request: Request) -> AutomationRuntime:
    """Automation runtime from app.state; 503 when it was not started."""
    runtime = getattr(request.app.state, "automation", None)
    if runtime is None:
        raise SqlNotConfiguredException()
    return runtime


AutomationDep = Annotated[AutomationRuntime, Depends(get_automation)]


def get_event_bus(runtime: AutomationDep) -> EventBus:
    return runtime.bus


def get_workflow_engine(runtime: AutomationDep) -> WorkflowEngine:
    return runtime.engine


def get_scheduler(runtime: AutomationDep) -> Scheduler:
    return runtime.scheduler


def get_job_state_machine(runtime: AutomationDep) -> JobStateMachine:
    return runtime.job_state_machine


def get_log_queries(runtime: AutomationDep) -> ExecutionLogQueries:
    return runtime.log_queries
