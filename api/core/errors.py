"""
Domain error kinds and their HTTP translation.

Services raise `DomainError` subclasses and never touch HTTP. The handlers
installed by `install_error_handlers()` turn them into JSON bodies:

    {"error": "<kind>", "message": "<text>"}

Operational kinds (5xx) are logged with the request id and returned without
internal detail.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DomainError(Exception):
    kind = "DomainError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def is_operational(self) -> bool:
        return self.status_code >= 500

    def to_body(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class ValidationError(DomainError):
    kind = "ValidationError"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request."


class InvalidCredentials(DomainError):
    kind = "InvalidCredentials"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid email or password."


class Unauthorized(DomainError):
    kind = "Unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Missing or invalid session credential."


class Forbidden(DomainError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not allowed to modify this record."


class NotFound(DomainError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found."


class AlreadyExists(DomainError):
    kind = "AlreadyExists"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists."


class ConstraintViolation(DomainError):
    kind = "ConstraintViolation"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Referenced record does not exist."


class ContentRejected(DomainError):
    kind = "ContentRejected"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"Field '{field}' was rejected by content moderation.")

    def to_body(self) -> dict[str, Any]:
        return {**super().to_body(), "field": self.field}


class StorageError(DomainError):
    kind = "StorageError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "The request could not be completed. Try again later."


class ModerationUnavailable(DomainError):
    kind = "ModerationUnavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Content moderation is unavailable. Try again later."


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def error_response(exc: DomainError, request: Request) -> JSONResponse:
    body = exc.to_body()
    if exc.is_operational:
        # Never leak driver/provider detail for operational failures.
        body = {
            "error": exc.kind,
            "message": type(exc).default_message,
            "request_id": _request_id(request),
        }
    return JSONResponse(status_code=exc.status_code, content=body)


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.is_operational:
        logger.warning(
            "operational_error kind=%s request_id=%s path=%s detail=%s",
            exc.kind,
            _request_id(request),
            request.url.path,
            exc.message,
            exc_info=exc.__cause__,
        )
    return error_response(exc, request)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors()[:5]:
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg', 'invalid')}" if location else str(err.get("msg")))
    message = "; ".join(problems) or "Malformed request."
    return error_response(ValidationError(message), request)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kinds = {
        status.HTTP_404_NOT_FOUND: "NotFound",
        status.HTTP_405_METHOD_NOT_ALLOWED: "MethodNotAllowed",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": kinds.get(exc.status_code, "HTTPError"), "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = _request_id(request)
    logger.exception("unhandled_error request_id=%s path=%s", request_id, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "InternalError",
            "message": "The request could not be completed. Try again later.",
            "request_id": request_id,
        },
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_handler)
