"""
release_orchestrator.api.errors

Exception handlers mapping domain errors onto HTTP responses.

Responsibilities:
- Translate `DeployError` subclasses into status codes.
- Keep one error envelope: `{"ok": false, "error": "..."}`.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from release_orchestrator.errors import (
    ConflictError,
    DeployError,
    NotFoundError,
    RemoteError,
    RetryExhausted,
    ValidationError,
)
from release_orchestrator.observability.logging import get_logger

log = get_logger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[DeployError], int], ...] = (
    (ValidationError, HTTP_400_BAD_REQUEST),
    (NotFoundError, HTTP_404_NOT_FOUND),
    (ConflictError, HTTP_409_CONFLICT),
    (RemoteError, HTTP_502_BAD_GATEWAY),
    (RetryExhausted, HTTP_502_BAD_GATEWAY),
)


def status_for(exc: DeployError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return HTTP_500_INTERNAL_SERVER_ERROR


def _envelope(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


async def _deploy_error_handler(request: Request, exc: DeployError) -> JSONResponse:
    status_code = status_for(exc)
    log.warning(
        "request_failed",
        error_type=type(exc).__name__,
        error=str(exc),
        status_code=status_code,
    )
    return _envelope(status_code, str(exc))


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()))
    message = f"{where}: {first.get('msg', 'invalid request')}" if where else "invalid request"
    return _envelope(HTTP_400_BAD_REQUEST, message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DeployError, _deploy_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
