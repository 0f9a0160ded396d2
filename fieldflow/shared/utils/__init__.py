"""Shared utilities: datetime and id generators."""

from fieldflow.shared.utils.datetime import (
    duration_ms,
    ensure_utc,
    start_of_utc_day,
    truncate_to_minute,
    utc_now,
)
from fieldflow.shared.utils.generators import generate_cuid

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "truncate_to_minute",
    "start_of_utc_day",
    "duration_ms",
]
