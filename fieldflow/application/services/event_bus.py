"""In-process publish/subscribe hub for business events.

emit() suppresses repeats of the same (event_type, entity_id) inside the
idempotency window, writes a ``pending`` automation log row, then awaits
exact-type listeners followed by wildcard listeners in registration order.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from fieldflow.application.dtos.automation import (
    BusinessEvent,
    EmitResult,
    ExecutionLogCreate,
)
from fieldflow.shared.enums import BusinessEventType, EntityType, ExecutionStatus
from fieldflow.shared.telemetry.tracing import add_span_attributes, traced
from fieldflow.shared.utils.datetime import utc_now
from fieldflow.shared.utils.generators import generate_cuid

if TYPE_CHECKING:
    from fieldflow.application.interfaces.repositories import IAutomationStore
    from fieldflow.application.interfaces.services import IIdempotencyStore

logger = logging.getLogger(__name__)

EventListener = Callable[[BusinessEvent], Awaitable[None] | None]

WILDCARD_EVENT_TYPES = frozenset({"*", "all"})

DEFAULT_IDEMPOTENCY_WINDOW_SECONDS = 300


def idempotency_key(event_type: str, entity_id: str) -> str:
    return f"{event_type}:{entity_id}"


def entity_type_for(event_type: str) -> str:
    """quote_* -> quote, job_* -> job, invoice_* -> invoice, lead_* -> lead, else unknown."""
    return EntityType.for_event(event_type).value


def resolve_entity_id(entity_data: dict[str, Any] | None) -> str:
    """entity_data['id'], else entity_data['entity_id'], else a fresh id."""
    data = entity_data or {}
    entity_id = data.get("id") or data.get("entity_id") or data.get("entityId")
    return str(entity_id) if entity_id else generate_cuid()


class EventBus:
    """Business event hub with an idempotency window.

    Listener exceptions are logged and never abort dispatch.
    """

    def __init__(
        self,
        idempotency_store: IIdempotencyStore,
        log_store: IAutomationStore | None = None,
        window_seconds: float = DEFAULT_IDEMPOTENCY_WINDOW_SECONDS,
    ) -> None:
        self.idempotency_store = idempotency_store
        self.log_store = log_store
        self.window_seconds = window_seconds
        self._listeners: dict[str, list[EventListener]] = {}
        self._wildcard_listeners: list[EventListener] = []

    def subscribe(self, event_type: str, handler: EventListener) -> Callable[[], None]:
        """Register handler for event_type ('*' or 'all' for every event).

        Returns:
            Callable that removes the registration.
        """
        if event_type in WILDCARD_EVENT_TYPES:
            self._wildcard_listeners.append(handler)
            logger.info("Registered handler for all business events")
            return lambda: self.unsubscribe(event_type, handler)

        if event_type not in BusinessEventType.values():
            logger.warning("Registering handler for unknown event type: %s", event_type)
        self._listeners.setdefault(event_type, []).append(handler)
        logger.info("Registered handler for event: %s", event_type)
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: str, handler: EventListener) -> None:
        listeners = (
            self._wildcard_listeners
            if event_type in WILDCARD_EVENT_TYPES
            else self._listeners.get(event_type, [])
        )
        if handler in listeners:
            listeners.remove(handler)

    def remove_all_listeners(self) -> None:
        self._listeners.clear()
        self._wildcard_listeners.clear()

    @traced("event_bus.emit")
    async def emit(self, event_type: str, entity_data: dict[str, Any] | None) -> EmitResult:
        """Publish one business event.

        Returns:
            EmitResult with emitted=True and the event id, or skipped=True with
            reason 'idempotency' when the same event was emitted inside the window.
        """
        if event_type not in BusinessEventType.values():
            logger.warning("Unknown event type: %s", event_type)

        entity_data = dict(entity_data or {})
        entity_id = resolve_entity_id(entity_data)
        key = idempotency_key(event_type, entity_id)

        if not await self.idempotency_store.claim(key, self.window_seconds):
            logger.info(
                "Skipping duplicate event: %s for entity %s", event_type, entity_id
            )
            return EmitResult(emitted=False, skipped=True, reason="idempotency")

        event = BusinessEvent(
            event_id=generate_cuid(),
            event_type=event_type,
            entity_id=entity_id,
            entity_type=entity_type_for(event_type),
            entity_data=entity_data,
            timestamp=utc_now(),
        )
        add_span_attributes(event_type=event_type, entity_id=entity_id)
        logger.info("Emitting business event: %s for entity %s", event_type, entity_id)

        await self._log_pending(event)
        await self._dispatch(event)
        return EmitResult(emitted=True, event_id=event.event_id)

    async def _log_pending(self, event: BusinessEvent) -> None:
        if self.log_store is None:
            return
        try:
            await self.log_store.insert_log(
                ExecutionLogCreate(
                    execution_id=generate_cuid(),
                    status=ExecutionStatus.PENDING.value,
                    trigger_type=event.event_type,
                    entity_type=event.entity_type,
                    entity_id=event.entity_id,
                    input_data=event.to_dict(),
                    started_at=event.timestamp,
                )
            )
        except Exception as e:
            logger.error("Failed to log event %s to database: %s", event.event_id, e)

    async def _dispatch(self, event: BusinessEvent) -> None:
        exact = list(self._listeners.get(event.event_type, []))
        for handler in exact + list(self._wildcard_listeners):
            try:
                outcome = handler(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception(
                    "Listener %r failed for event %s (%s)",
                    handler,
                    event.event_type,
                    event.event_id,
                )

    async def clear(self) -> None:
        """Drop all idempotency records."""
        await self.idempotency_store.clear()

    async def stats(self) -> dict[str, Any]:
        """Idempotency record count and listener counts per event type."""
        return {
            "idempotency_records_count": await self.idempotency_store.count(),
            "listener_counts": {
                event_type: len(self._listeners.get(event_type, []))
                for event_type in BusinessEventType.values()
            },
            "total_listeners": len(self._wildcard_listeners),
        }

    @staticmethod
    def registered_event_types() -> list[str]:
        return BusinessEventType.values()
