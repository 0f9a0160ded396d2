"""Repositories: SQLAlchemy-backed persistence for automation tables and business records."""

from fieldflow.infrastructure.persistence.repositories.automation_store import (
    SqlAutomationStore,
    SqlEntityGateway,
    SqlJobStateStore,
)
from fieldflow.infrastructure.persistence.repositories.entity_gateway_repo import (
    EntityGatewayRepository,
)
from fieldflow.infrastructure.persistence.repositories.execution_log_repo import (
    ExecutionLogRepository,
)
from fieldflow.infrastructure.persistence.repositories.follow_up_repo import FollowUpRepository
from fieldflow.infrastructure.persistence.repositories.job_transition_repo import (
    JobTransitionRepository,
)
from fieldflow.infrastructure.persistence.repositories.scheduled_job_repo import (
    ScheduledJobRepository,
)
from fieldflow.infrastructure.persistence.repositories.workflow_repo import WorkflowRepository

__all__ = [
    "WorkflowRepository",
    "ExecutionLogRepository",
    "ScheduledJobRepository",
    "FollowUpRepository",
    "EntityGatewayRepository",
    "JobTransitionRepository",
    "SqlAutomationStore",
    "SqlEntityGateway",
    "SqlJobStateStore",
]
