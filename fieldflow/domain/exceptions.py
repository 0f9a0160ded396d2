"""Errors raised by the automation engine, its handlers and the job state machine.

The API maps ``error_code`` to an HTTP status (core.exception_handlers).
Inside a workflow run, action errors never escape: the engine records them
as failed execution log rows.
"""

from typing import Any


class FieldflowException(Exception):
    """Base error: a message, a machine-readable code and a details dict."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or type(self).__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error_code, "message": self.message, "details": self.details}


class ValidationException(FieldflowException):
    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", {"field": field} if field else {})


class ResourceNotFoundException(FieldflowException):
    """A workflow, execution or job id that does not resolve to a row."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class WorkflowNotFoundException(ResourceNotFoundException):
    """Raised when a workflow is missing, inactive or soft-deleted."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__("Workflow", workflow_id)
        self.error_code = "WORKFLOW_NOT_FOUND"


class WorkflowDefinitionException(FieldflowException):
    """Raised when a stored workflow definition cannot be executed as written.

    Examples: unknown condition operator, action config missing a required
    key, negative delay.
    """

    def __init__(self, workflow_id: str, reason: str, **details_extra: Any) -> None:
        super().__init__(
            f"Invalid workflow definition {workflow_id}: {reason}",
            "WORKFLOW_DEFINITION_ERROR",
            {"workflow_id": workflow_id, "reason": reason, **details_extra},
        )


class ActionExecutionException(FieldflowException):
    """Raised by an action handler when its side effect fails."""

    def __init__(
        self, action_type: str, message: str, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            message,
            "ACTION_FAILED",
            {"action_type": action_type, **(details or {})},
        )
        self.action_type = action_type


class ActionTimeoutException(ActionExecutionException):
    """Raised when an action handler exceeds the configured timeout."""

    def __init__(self, action_type: str, timeout_seconds: float) -> None:
        super().__init__(
            action_type,
            f"Action {action_type} timed out after {timeout_seconds:g}s",
            {"timeout_seconds": timeout_seconds},
        )
        self.error_code = "ACTION_TIMEOUT"


class CronExpressionException(FieldflowException):
    """Raised when a cron expression cannot be parsed."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(
            f"Invalid cron expression '{expression}': {reason}",
            "CRON_EXPRESSION_ERROR",
            {"expression": expression, "reason": reason},
        )


class InvalidJobTransitionException(FieldflowException):
    """Raised when a job state change is not in the transition matrix."""

    def __init__(self, job_id: str, from_state: str, to_state: str) -> None:
        super().__init__(
            f"Cannot transition job {job_id} from {from_state} to {to_state}",
            "INVALID_JOB_TRANSITION",
            {"job_id": job_id, "from_state": from_state, "to_state": to_state},
        )


class SqlNotConfiguredException(FieldflowException):
    """Raised when an operation requires Postgres but DATABASE_URL is not set."""

    def __init__(self) -> None:
        super().__init__(
            "Automation storage is unavailable: DATABASE_URL is not configured",
            "SERVICE_UNAVAILABLE",
        )
