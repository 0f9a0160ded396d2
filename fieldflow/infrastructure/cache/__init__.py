"""Idempotency stores for the event bus."""

from fieldflow.infrastructure.cache.idempotency_store import (
    InMemoryIdempotencyStore,
    RedisIdempotencyStore,
)

__all__ = ["InMemoryIdempotencyStore", "RedisIdempotencyStore"]
