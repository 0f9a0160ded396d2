"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic. Used by main.py; no business
logic here, only wiring of infrastructure (HTTP client, idempotency store,
automation runtime, telemetry, DB engine dispose).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from fieldflow.core.config import get_settings
from fieldflow.infrastructure.persistence import database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: shared HTTP client, idempotency store (Redis if enabled),
    automation runtime and scheduler, telemetry (if enabled). Shutdown order:
    scheduler stop, idempotency store disconnect, HTTP client close,
    telemetry shutdown, SQL engine dispose.
    """
    settings = get_settings()

    # ---- Startup ----
    # Shared HTTP client for SendGrid/Twilio calls (connection reuse).
    app.state.http_client = httpx.AsyncClient(timeout=settings.notification_http_timeout_seconds)

    from fieldflow.infrastructure.cache.idempotency_store import (
        InMemoryIdempotencyStore,
        RedisIdempotencyStore,
    )

    if settings.redis_enabled:
        idempotency_store = RedisIdempotencyStore()
        await idempotency_store.connect()
    else:
        idempotency_store = InMemoryIdempotencyStore()
    app.state.idempotency_store = idempotency_store

    app.state.automation = None
    if not settings.automation_enabled:
        logger.info("Automation disabled (AUTOMATION_ENABLED=false)")
    elif not database.is_configured():
        logger.warning("DATABASE_URL not set; automation endpoints will return 503")
    else:
        from fieldflow.core.automation import build_sql_runtime

        runtime = build_sql_runtime(settings, idempotency_store, app.state.http_client)
        app.state.automation = runtime
        if settings.automation_scheduler_enabled:
            await runtime.start_scheduler()
        else:
            logger.info("Scheduler disabled in this process")

    if settings.telemetry_enabled:
        from fieldflow.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            enabled=True,
            environment=settings.telemetry_environment,
            scheduler_enabled=settings.automation_scheduler_enabled,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        telemetry.instrument_fastapi(app)
        telemetry.instrument_logging()
        if database.engine is not None:
            telemetry.instrument_sqlalchemy(database.engine)
        if settings.redis_enabled:
            telemetry.instrument_redis()
        logger.info("Telemetry initialized")

    yield

    # ---- Shutdown ----
    runtime = getattr(app.state, "automation", None)
    if runtime is not None:
        await runtime.shutdown()
        app.state.automation = None

    store = getattr(app.state, "idempotency_store", None)
    if isinstance(store, RedisIdempotencyStore):
        await store.disconnect()

    if getattr(app.state, "http_client", None) is not None:
        await app.state.http_client.aclose()
        app.state.http_client = None
        logger.info("HTTP client closed")

    from fieldflow.shared.telemetry.telemetry import get_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        logger.info("Telemetry shutdown complete")

    await database.dispose_engine()
