"""Pytest configuration and fixtures for fieldflow.

Unit and API tests run the automation runtime over in-memory ports
(tests.fakes). Repository tests use a real Postgres session and are marked
requires_db.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from fieldflow.core.automation import AutomationRuntime, build_runtime
from fieldflow.core.config import Settings
from fieldflow.infrastructure.cache.idempotency_store import InMemoryIdempotencyStore
from fieldflow.infrastructure.persistence import database
from fieldflow.infrastructure.services.message_template_renderer import (
    MessageTemplateRenderer,
)
from fieldflow.main import app
from tests.fakes import (
    InMemoryAutomationStore,
    InMemoryEntityGateway,
    InMemoryJobStateStore,
    RecordingEmailSender,
    RecordingSmsSender,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        company_name="Acme Landscaping",
        company_phone="(555) 010-2000",
        public_base_url="https://app.example.com",
    )


@pytest.fixture
def store() -> InMemoryAutomationStore:
    return InMemoryAutomationStore()


@pytest.fixture
def gateway() -> InMemoryEntityGateway:
    return InMemoryEntityGateway()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def sms_sender() -> RecordingSmsSender:
    return RecordingSmsSender()


@pytest.fixture
def runtime(
    settings: Settings,
    store: InMemoryAutomationStore,
    gateway: InMemoryEntityGateway,
    email_sender: RecordingEmailSender,
    sms_sender: RecordingSmsSender,
) -> AutomationRuntime:
    """Fully wired runtime over in-memory ports (scheduler not started)."""
    return build_runtime(
        settings,
        store=store,
        gateway=gateway,
        job_state_store=InMemoryJobStateStore(gateway),
        idempotency_store=InMemoryIdempotencyStore(),
        email_sender=email_sender,
        sms_sender=sms_sender,
        renderer=MessageTemplateRenderer(),
    )


@pytest.fixture
async def client(runtime: AutomationRuntime) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI) with the in-memory runtime."""
    app.state.automation = runtime
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.state.automation = None


@pytest.fixture
async def db_session() -> AsyncSession:
    """Database session for repository tests. Rolls back after test.

    Skips when DATABASE_URL is not configured. Run the schema first:
    alembic upgrade head. Without a database: pytest -m 'not requires_db'.
    """
    if not database.is_configured():
        pytest.skip("Postgres not configured: set DATABASE_URL, then run: alembic upgrade head")
    async with database.get_session_factory()() as session:
        yield session
        await session.rollback()
