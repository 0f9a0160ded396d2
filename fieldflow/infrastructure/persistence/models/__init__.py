"""Persistence models: ORM entities and mixins."""

from fieldflow.infrastructure.persistence.models.automation import (
    AutomationAction,
    AutomationFollowUp,
    AutomationLog,
    AutomationScheduledJob,
    AutomationTrigger,
    AutomationWorkflow,
)
from fieldflow.infrastructure.persistence.models.job_transition import JobStateTransition
from fieldflow.infrastructure.persistence.models.mixins import (
    AppendOnlyModel,
    AutomationModel,
    SoftDeleteMixin,
)

__all__ = [
    "AutomationWorkflow",
    "AutomationTrigger",
    "AutomationAction",
    "AutomationLog",
    "AutomationScheduledJob",
    "AutomationFollowUp",
    "JobStateTransition",
    "AutomationModel",
    "AppendOnlyModel",
    "SoftDeleteMixin",
]
