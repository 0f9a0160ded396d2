"""Automation runtime composition.

Builds the event bus, action registry, workflow engine, scheduler and job
state machine from their ports once per process. The FastAPI lifespan and
scripts use build_sql_runtime(); tests pass in-memory ports to
build_runtime().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from fieldflow.application.actions import ActionRegistry, build_default_registry
from fieldflow.application.services.event_bus import EventBus
from fieldflow.application.services.job_state_machine import JobStateMachine
from fieldflow.application.services.scheduler import Scheduler
from fieldflow.application.services.workflow_engine import WorkflowEngine
from fieldflow.application.use_cases.execution_logs import ExecutionLogQueries
from fieldflow.core.config import Settings
from fieldflow.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from fieldflow.application.interfaces.repositories import (
        IAutomationStore,
        IEntityGateway,
        IJobStateStore,
    )
    from fieldflow.application.interfaces.services import (
        IEmailSender,
        IIdempotencyStore,
        IMessageTemplateRenderer,
        ISmsSender,
    )

logger = get_logger(__name__)


@dataclass
class AutomationRuntime:
    """Process-wide automation services (one instance, held on app.state)."""

    store: IAutomationStore
    idempotency_store: IIdempotencyStore
    registry: ActionRegistry
    bus: EventBus
    engine: WorkflowEngine
    scheduler: Scheduler
    job_state_machine: JobStateMachine
    log_queries: ExecutionLogQueries

    async def start_scheduler(self) -> None:
        """Create missing cron jobs then start the poll loop."""
        await self.scheduler.sync_cron_triggers()
        self.scheduler.start(self.engine)

    async def shutdown(self) -> None:
        await self.scheduler.stop()


def build_runtime(
    settings: Settings,
    *,
    store: IAutomationStore,
    gateway: IEntityGateway,
    job_state_store: IJobStateStore,
    idempotency_store: IIdempotencyStore,
    email_sender: IEmailSender,
    sms_sender: ISmsSender,
    renderer: IMessageTemplateRenderer,
) -> AutomationRuntime:
    """Wire the automation services from their ports."""
    registry = build_default_registry(
        store=store,
        gateway=gateway,
        email_sender=email_sender,
        sms_sender=sms_sender,
        renderer=renderer,
        company_name=settings.company_name,
        base_url=settings.public_base_url,
        company_phone=settings.company_phone,
    )
    bus = EventBus(
        idempotency_store,
        log_store=store,
        window_seconds=settings.automation_idempotency_window_seconds,
    )
    scheduler = Scheduler(
        store,
        poll_interval_seconds=settings.automation_poll_interval_seconds,
        batch_size=settings.automation_poll_batch_size,
    )
    engine = WorkflowEngine(
        store,
        registry,
        scheduler=scheduler,
        entity_gateway=gateway,
        action_timeout_seconds=settings.automation_action_timeout_seconds,
        refresh_entity_snapshot=settings.automation_refresh_entity_snapshot,
    )
    engine.attach(bus)
    return AutomationRuntime(
        store=store,
        idempotency_store=idempotency_store,
        registry=registry,
        bus=bus,
        engine=engine,
        scheduler=scheduler,
        job_state_machine=JobStateMachine(job_state_store, bus),
        log_queries=ExecutionLogQueries(store),
    )


def build_email_sender(
    settings: Settings, http_client: httpx.AsyncClient | None = None
) -> IEmailSender:
    from fieldflow.infrastructure.services.email_sender import (
        LogOnlyEmailSender,
        SendGridEmailSender,
    )

    if not settings.sendgrid_configured:
        logger.warning("SENDGRID_API_KEY not configured. Emails will be logged, not sent.")
        return LogOnlyEmailSender()
    return SendGridEmailSender(
        settings.sendgrid_api_key.get_secret_value(),
        settings.sendgrid_from_email,
        from_name=settings.sendgrid_from_name,
        timeout_seconds=settings.notification_http_timeout_seconds,
        http_client=http_client,
    )


def build_sms_sender(
    settings: Settings, http_client: httpx.AsyncClient | None = None
) -> ISmsSender:
    from fieldflow.infrastructure.services.sms_sender import LogOnlySmsSender, TwilioSmsSender

    if not settings.twilio_configured:
        logger.warning("Twilio credentials not configured. SMS will be logged, not sent.")
        return LogOnlySmsSender()
    return TwilioSmsSender(
        settings.twilio_account_sid,
        settings.twilio_auth_token.get_secret_value(),
        settings.twilio_from_number,
        timeout_seconds=settings.notification_http_timeout_seconds,
        http_client=http_client,
    )


def build_sql_runtime(
    settings: Settings,
    idempotency_store: IIdempotencyStore,
    http_client: httpx.AsyncClient | None = None,
) -> AutomationRuntime:
    """Runtime over PostgreSQL. Raises SqlNotConfiguredException without DATABASE_URL."""
    from fieldflow.infrastructure.persistence.database import get_session_factory
    from fieldflow.infrastructure.persistence.repositories import (
        SqlAutomationStore,
        SqlEntityGateway,
        SqlJobStateStore,
    )
    from fieldflow.infrastructure.services.message_template_renderer import (
        MessageTemplateRenderer,
    )

    session_factory = get_session_factory()
    return build_runtime(
        settings,
        store=SqlAutomationStore(session_factory),
        gateway=SqlEntityGateway(session_factory),
        job_state_store=SqlJobStateStore(session_factory),
        idempotency_store=idempotency_store,
        email_sender=build_email_sender(settings, http_client),
        sms_sender=build_sms_sender(settings, http_client),
        renderer=MessageTemplateRenderer(),
    )
