"""Shared enumerations for the automation engine.

Cross-cutting enums used by application and infrastructure (event and
action vocabularies, execution log status). Domain-specific enums (e.g.
JobState) live in fieldflow.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ExecutionStatus(_ValuesMixin, str, Enum):
    """Status of an automation log row (run-level or action-level)."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    SCHEDULED = "scheduled"


class BusinessEventType(_ValuesMixin, str, Enum):
    """Known business event names. Unknown names are accepted with a warning."""

    QUOTE_SENT = "quote_sent"
    QUOTE_NOT_RESPONDED = "quote_not_responded"
    QUOTE_APPROVED = "quote_approved"
    QUOTE_REJECTED = "quote_rejected"
    JOB_CREATED = "job_created"
    JOB_SCHEDULED = "job_scheduled"
    JOB_STARTED = "job_started"
    JOB_COMPLETED = "job_completed"
    JOB_CANCELLED = "job_cancelled"
    INVOICE_CREATED = "invoice_created"
    INVOICE_SENT = "invoice_sent"
    INVOICE_OVERDUE = "invoice_overdue"
    INVOICE_PAID = "invoice_paid"
    LEAD_CREATED = "lead_created"
    LEAD_STAGE_CHANGED = "lead_stage_changed"


# Trigger type for cron-driven triggers (not a business event).
SCHEDULE_TRIGGER_TYPE = "schedule"

# Trigger type recorded for operator-initiated runs.
MANUAL_TRIGGER_TYPE = "manual"


class ActionType(_ValuesMixin, str, Enum):
    """Built-in action handler names. The registry accepts others."""

    SEND_EMAIL = "send_email"
    SEND_SMS = "send_sms"
    CREATE_TASK = "create_task"
    CREATE_REMINDER = "create_reminder"
    UPDATE_LEAD_STAGE = "update_lead_stage"
    UPDATE_JOB_STATUS = "update_job_status"
    CREATE_INVOICE = "create_invoice"


class EntityType(_ValuesMixin, str, Enum):
    """Business entity kinds that emit events."""

    QUOTE = "quote"
    JOB = "job"
    INVOICE = "invoice"
    LEAD = "lead"
    UNKNOWN = "unknown"

    @classmethod
    def for_event(cls, event_type: str) -> "EntityType":
        """Map an event name to its entity kind by prefix (quote_*, job_*, ...)."""
        prefix = (event_type or "").split("_", 1)[0]
        for member in cls:
            if member is not cls.UNKNOWN and member.value == prefix:
                return member
        return cls.UNKNOWN


class FollowUpKind(_ValuesMixin, str, Enum):
    """Kinds of follow-up work created by actions."""

    TASK = "task"
    REMINDER = "reminder"
