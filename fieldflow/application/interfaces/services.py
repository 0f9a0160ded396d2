"""Service interfaces (ports) for the application layer.

Protocols define contracts for collaborators of the engine (DIP).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from fieldflow.application.dtos.automation import EmitResult, WorkflowRunResult


# Idempotency store interface
class IIdempotencyStore(Protocol):
    """Remembers recently emitted (event_type, entity_id) keys for a window."""

    async def claim(self, key: str, window_seconds: float) -> bool:
        """Record key unless a record younger than the window exists; return True when recorded."""

    async def count(self) -> int:
        """Number of live records."""

    async def clear(self) -> None:
        """Drop all records."""


# Email sender interface
class IEmailSender(Protocol):
    """Protocol for delivering one email."""

    async def send(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        text: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
    ) -> dict[str, Any]:
        """Send (or log) the email and return provider output; raises ActionExecutionException."""


# SMS sender interface
class ISmsSender(Protocol):
    """Protocol for delivering one SMS."""

    async def send(self, *, to: str, body: str) -> dict[str, Any]:
        """Send (or log) the SMS and return provider output; raises ActionExecutionException."""


# Message template renderer interface
class IMessageTemplateRenderer(Protocol):
    """Renders stored email/SMS templates and inline strings with context variables."""

    def render_string(self, source: str | None, variables: dict[str, Any]) -> str:
        """Render a template string; None renders as empty."""

    def get_email_template(self, template_id: str) -> dict[str, str] | None:
        """Return {subject, body_html, body_text} for a known template id."""

    def get_sms_template(self, template_id: str) -> str | None:
        """Return the message source for a known template id."""


# Workflow runner interface (used by the scheduler)
class IWorkflowRunner(Protocol):
    """Anything that can execute a workflow by id with a trigger context."""

    async def execute_workflow(
        self, workflow_id: str, context: dict[str, Any]
    ) -> WorkflowRunResult:
        """Run the workflow; raise WorkflowNotFoundException when missing or inactive."""


# Delayed action scheduler interface (used by the engine)
class IDelayedActionScheduler(Protocol):
    """Accepts actions to run later."""

    async def schedule_delayed_action(
        self,
        workflow_id: str,
        trigger_id: str | None,
        delay_minutes: int,
        context: dict[str, Any],
    ) -> tuple[str, datetime]:
        """Insert a one-shot job; return (job_id, scheduled_for)."""


# Event publisher interface (used by the job state machine)
class IEventPublisher(Protocol):
    """Publishes business events."""

    async def emit(self, event_type: str, entity_data: dict[str, Any]) -> EmitResult:
        """Emit one business event."""
