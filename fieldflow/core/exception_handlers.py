"""Exception handlers: engine and framework errors as JSON responses.

Every error body has ``error`` and ``message``; engine errors add
``details`` and all bodies carry the request id assigned by
RequestIDMiddleware.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fieldflow.core.config import get_settings
from fieldflow.domain.exceptions import FieldflowException

logger = logging.getLogger(__name__)

_ERROR_CODE_STATUS: dict[str, int] = {
    "RESOURCE_NOT_FOUND": 404,
    "WORKFLOW_NOT_FOUND": 404,
    "VALIDATION_ERROR": 400,
    "CRON_EXPRESSION_ERROR": 400,
    "WORKFLOW_DEFINITION_ERROR": 422,
    "INVALID_JOB_TRANSITION": 409,
    "ACTION_FAILED": 502,
    "ACTION_TIMEOUT": 504,
    "SERVICE_UNAVAILABLE": 503,
}


def _error_response(request: Request, status_code: int, body: dict[str, Any]) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        body["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=body)


def _fieldflow_exception_handler(request: Request, exc: FieldflowException) -> JSONResponse:
    status = _ERROR_CODE_STATUS.get(exc.error_code, 400)
    if status >= 500:
        logger.warning(
            "%s %s failed with %s: %s",
            request.method,
            request.url.path,
            exc.error_code,
            exc.message,
        )
    return _error_response(request, status, exc.to_dict())


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error_response(
        request,
        422,
        {
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors()),
        },
    )


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(
        request, exc.status_code, {"error": "HTTP_ERROR", "message": exc.detail}
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500; the exception text is exposed only in debug mode."""
    logger.exception("Unhandled exception on %s %s: %s", request.method, request.url.path, exc)
    detail: Any = str(exc) if get_settings().debug else "Internal server error"
    return _error_response(request, 500, {"error": "INTERNAL_ERROR", "message": detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FieldflowException, _fieldflow_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
