"""Logging setup, OpenTelemetry provider and span helpers for the engine."""

from fieldflow.shared.telemetry.logging import get_logger, setup_logging
from fieldflow.shared.telemetry.telemetry import (
    TelemetryConfig,
    get_telemetry,
    set_telemetry,
)
from fieldflow.shared.telemetry.tracing import add_span_attributes, add_span_event, traced

__all__ = [
    "setup_logging",
    "get_logger",
    "TelemetryConfig",
    "get_telemetry",
    "set_telemetry",
    "traced",
    "add_span_attributes",
    "add_span_event",
]
