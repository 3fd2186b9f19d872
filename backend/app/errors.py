"""Application error taxonomy and the handlers that render it.

Every failure leaves the API as the same envelope::

    {"success": false, "error": "<human readable>", "details": [...]}

``details`` is only present for validation failures and lists one
``{"field": ..., "message": ...}`` entry per offending field.
"""

from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class AppError(Exception):
    """Base class for errors that map onto an HTTP status and a safe message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError | RequestValidationError) -> "ValidationError":
        return cls(details=field_issues(exc.errors()))


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(AppError):
    # Conflicts are client faults and share the 400 status with validation.
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Conflict with existing data"


class InfrastructureError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Service temporarily unavailable"


class SearchFailed(InfrastructureError):
    default_message = "Failed to fetch installers"


class UpdateFailed(InfrastructureError):
    default_message = "Failed to update installer"


def field_issues(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Flatten pydantic error dicts into ``{field, message}`` pairs."""
    issues = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        issues.append({"field": ".".join(loc) or None, "message": err.get("msg", "Invalid value")})
    return issues


def error_envelope(message: str, details: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": message}
    if details:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("app_error", path=request.url.path, error_type=type(exc).__name__)
    return JSONResponse(status_code=exc.status_code, content=error_envelope(exc.message, exc.details))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    err = ValidationError.from_pydantic(exc)
    return JSONResponse(status_code=err.status_code, content=error_envelope(err.message, err.details))


async def pydantic_validation_handler(request: Request, exc: PydanticValidationError) -> JSONResponse:
    err = ValidationError.from_pydantic(exc)
    return JSONResponse(status_code=err.status_code, content=error_envelope(err.message, err.details))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(message),
        headers=getattr(exc, "headers", None),
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    response = JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_envelope(f"Rate limit exceeded: {exc.detail}"),
    )
    # Adds Retry-After and the X-RateLimit-* headers when enabled on the limiter
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PydanticValidationError, pydantic_validation_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
