"""Span helpers for workflow runs, event dispatch and scheduler polls."""

import inspect
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

# Only these kwarg names are copied onto spans; entity_data and action
# configs may carry customer contact details.
_SPAN_KWARGS = frozenset({
    "workflow_id", "trigger_id", "action_id", "execution_id", "event_type",
    "entity_type", "entity_id", "action_type", "status", "limit", "skip",
    "delay_minutes", "job_id", "to_state",
})

_tracer = trace.get_tracer("fieldflow")


@contextmanager
def _span(name: str, static: dict | None, kwargs: dict) -> Iterator[trace.Span]:
    with _tracer.start_as_current_span(
        name, record_exception=False, set_status_on_exception=False
    ) as span:
        for key, value in (static or {}).items():
            span.set_attribute(key, value)
        for key, value in kwargs.items():
            if key in _SPAN_KWARGS and value is not None:
                span.set_attribute(f"arg.{key}", str(value))
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise
        span.set_status(Status(StatusCode.OK))


def traced(operation_name: str | None = None, attributes: dict | None = None) -> Callable:
    """Wrap a sync or async function in a span.

    Positional arguments are never recorded. Keyword arguments are, when their
    name is one of the engine identifiers (workflow_id, execution_id, ...).

    Args:
        operation_name: Span name; defaults to module.function.
        attributes: Static attributes set on every span.
    """

    def decorator(func: Callable) -> Callable:
        name = operation_name or f"{func.__module__}.{func.__name__}"

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with _span(name, attributes, kwargs):
                    return await func(*args, **kwargs)

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _span(name, attributes, kwargs):
                return func(*args, **kwargs)

        return sync_wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attributes(attributes)


def add_span_event(name: str, attributes: dict | None = None) -> None:
    """Record a point-in-time event (action skipped, action deferred) on the current span."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes=attributes or {})
