"""ASGI middleware."""

from fieldflow.middleware.request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware"]
