"""Render every error as ``{"error": "<message>"}``.

Relay errors map to a status by type; ``HTTPException``s raised by
dependencies and request validation failures use the same shape.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from toolrelay.core.errors import (
    AuthError,
    ChatNotFoundError,
    ConflictError,
    InvalidInputError,
    NotConnectedError,
    ProviderError,
    RelayError,
    ServiceUnavailableError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

# Checked in order; first match wins.
_STATUS_BY_TYPE: list[tuple[type[RelayError], int]] = [
    (InvalidInputError, 400),
    (AuthError, 401),
    (ChatNotFoundError, 404),
    (ConflictError, 409),
    (NotConnectedError, 503),
    (ServiceUnavailableError, 503),
    (ProviderError, 500),
]


def status_for(exc: RelayError) -> int:
    """HTTP status for a relay error (500 when unmapped)."""
    for exc_type, status in _STATUS_BY_TYPE:
        if isinstance(exc, exc_type):
            return status
    return 500


def error_response(status_code: int, message: str, **kwargs: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, **kwargs)  # type: ignore[arg-type]


async def _relay_error(request: Request, exc: RelayError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return error_response(status, str(exc))


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


async def _validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
    else:
        message = "Invalid request"
    return error_response(400, message)


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, str(exc) or exc.__class__.__name__)


def install_error_handlers(app: FastAPI) -> None:
    """Register the ``{"error": ...}`` handlers on ``app``."""
    app.add_exception_handler(RelayError, _relay_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error)
