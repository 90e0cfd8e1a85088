"""
Exception handlers: domain errors -> JSON error envelope.

Envelope::

    {"success": false, "message": "...",
     "errors": [{"field": ..., "message": ...}],          # validation only
     "conflict": {"ride_id": ..., "status": ..., "created_at": ...}}  # 409 only
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ridehail.config import settings
from ridehail.domain.exceptions import (
    Conflict,
    Forbidden,
    NotFound,
    RideError,
    RideValidationError,
    Unauthorized,
)

logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[RideError], int] = {
    RideValidationError: status.HTTP_400_BAD_REQUEST,
    Unauthorized: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_409_CONFLICT,
}

# Request sections FastAPI prefixes onto pydantic error locations
_LOC_SECTIONS = {"body", "query", "path", "header"}


def _envelope(message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "message": message, **extra}


def status_code_for(exc: RideError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_CODES:
            return _STATUS_CODES[cls]
    return status.HTTP_400_BAD_REQUEST


async def ride_error_handler(request: Request, exc: RideError) -> JSONResponse:
    extra: dict[str, Any] = {}
    headers = None
    if isinstance(exc, RideValidationError):
        extra["errors"] = [
            {"field": e.field, "message": e.message} for e in exc.errors
        ]
    elif isinstance(exc, Conflict):
        extra["conflict"] = {
            "ride_id": exc.ride_id,
            "status": exc.status,
            "created_at": exc.created_at.isoformat() if exc.created_at else None,
        }
    elif isinstance(exc, Unauthorized):
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=status_code_for(exc),
        content=_envelope(exc.message, **extra),
        headers=headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in _LOC_SECTIONS]
        errors.append(
            {"field": ".".join(loc) or "request", "message": err.get("msg", "")}
        )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope("Validation failed", errors=errors),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    extra = {"detail": str(exc)} if settings.is_development else {}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope("Internal server error", **extra),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RideError, ride_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
