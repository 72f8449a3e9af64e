"""Service error taxonomy and the JSON error envelope used by the API."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ServiceError(RuntimeError):
    """Base error for service layer failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


class UnauthenticatedError(ServiceError):
    """Raised when a credential is missing or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentialsError(UnauthenticatedError):
    """Raised when an email/password pair does not match an account."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class ForbiddenError(ServiceError):
    """Raised when the actor's role or ownership does not permit an action."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    """Raised when a referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    """Raised when a unique field is already taken."""

    status_code = status.HTTP_400_BAD_REQUEST


def error_body(message: str, status_code: int, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "message": message,
        "statusCode": status_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    payload.update(extra)
    return {"error": payload}


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, exc.status_code),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    code = status.HTTP_400_BAD_REQUEST
    details = jsonable_encoder(exc.errors(), custom_encoder={Exception: str})
    return JSONResponse(status_code=code, content=error_body("Validation failed", code, details=details))


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=code, content=error_body("Internal Server Error", code))


def install_exception_handlers(app: FastAPI) -> None:
    """Render every error raised by the application in the JSON envelope."""

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
