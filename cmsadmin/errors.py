"""
Error taxonomy shared by handlers, transports and client state.

Handlers raise the typed errors below. Client layers funnel every other
fault through to_app_error() so the UI only ever sees one of these codes.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
import pydantic

from cmsadmin.slugs import SLUG_PATTERN

logger = logging.getLogger(__name__)

NOT_FOUND = "NOT_FOUND"
VALIDATION_ERROR = "VALIDATION_ERROR"
CONFLICT = "CONFLICT"
UNAUTHORIZED = "UNAUTHORIZED"
FORBIDDEN = "FORBIDDEN"
NETWORK_ERROR = "NETWORK_ERROR"
UNKNOWN = "UNKNOWN"


class AppError(Exception):
    """Base class for every error surfaced to callers."""

    code: str = UNKNOWN
    status_code: int = 500

    def __init__(self, message: str, details: object | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(AppError):
    code = NOT_FOUND
    status_code = 404


class ValidationError(AppError):
    code = VALIDATION_ERROR
    status_code = 422


class ConflictError(AppError):
    code = CONFLICT
    status_code = 409


class UnauthorizedError(AppError):
    code = UNAUTHORIZED
    status_code = 401


class ForbiddenError(AppError):
    code = FORBIDDEN
    status_code = 403


class NetworkError(AppError):
    code = NETWORK_ERROR
    status_code = 503


class UnknownError(AppError):
    code = UNKNOWN
    status_code = 500


_BY_CODE: dict[str, type[AppError]] = {
    cls.code: cls
    for cls in (
        NotFoundError,
        ValidationError,
        ConflictError,
        UnauthorizedError,
        ForbiddenError,
        NetworkError,
        UnknownError,
    )
}


def error_from_code(code: str | None, message: str) -> AppError:
    """Rebuild a typed error from its wire code. Unknown codes map to UnknownError."""
    return _BY_CODE.get(code or UNKNOWN, UnknownError)(message)


def to_app_error(exc: BaseException) -> AppError:
    """
    Translate any fault into the taxonomy.

    Args:
        exc: Exception raised by a transport, handler or callback

    Returns:
        The same object if it already is an AppError, else a wrapping AppError
    """
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, pydantic.ValidationError):
        messages = [describe_field_error(err) for err in exc.errors()]
        return ValidationError(", ".join(messages) or "Invalid input", details=exc)
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 401:
            return UnauthorizedError(str(exc), details=exc)
        if status == 403:
            return ForbiddenError(str(exc), details=exc)
        if status == 404:
            return NotFoundError(str(exc), details=exc)
        return UnknownError(str(exc), details=exc)
    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return NetworkError("Network error. Please check your connection.", details=exc)
    message = str(exc) or "An unexpected error occurred"
    return UnknownError(message, details=exc)


def describe_field_error(err: dict[str, Any]) -> str:
    """
    One sentence per field error, e.g. "Title must be at least 3 characters".

    Args:
        err: One entry of pydantic.ValidationError.errors()
    """
    field = str(err["loc"][-1]) if err["loc"] else "value"
    label = field.replace("_", " ").capitalize()
    ctx = err.get("ctx") or {}
    kind = err["type"]
    if kind == "string_too_short":
        size = ctx["min_length"]
        return f"{label} must be at least {size} character{'' if size == 1 else 's'}"
    if kind == "string_too_long":
        return f"{label} must be no more than {ctx['max_length']} characters"
    if kind == "string_pattern_mismatch" and ctx.get("pattern") == SLUG_PATTERN:
        return f"{label} must contain only lowercase letters, numbers, and hyphens"
    if kind == "missing":
        return f"{label} is required"
    return f"{label}: {err['msg']}"


def user_message(error: AppError) -> str:
    """User-facing text for an error."""
    if isinstance(error, UnauthorizedError):
        return "You are not authorized to perform this action."
    if isinstance(error, ForbiddenError):
        return "Access forbidden."
    if isinstance(error, NotFoundError):
        return "The requested resource was not found."
    if isinstance(error, NetworkError):
        return "Network error. Please check your connection and try again."
    if isinstance(error, (ValidationError, ConflictError)):
        return error.message or "Validation error occurred."
    return error.message or "An unexpected error occurred."


def log_error(error: AppError, context: str | None = None) -> None:
    """Log an error with its code. Context names the calling operation."""
    prefix = f"[{context}] " if context else ""
    logger.error("%s%s (code=%s)", prefix, error.message, error.code)
