"""
Standardized error response utilities for the ScanReward API.

Provides consistent error response format across all endpoints:
{
    "error": {
        "message": "User-friendly error message",
        "code": "ERROR_CODE"
    }
}

Business errors may add fields next to message/code (retry_at for a
cooldown, missing_fields for an incomplete profile).

Usage:
    from scanreward.utils.errors import error_response, ErrorCode

    return error_response("Shop not found", ErrorCode.NOT_FOUND, 404)
"""
import logging
from enum import Enum
from typing import Optional

from flask import current_app, jsonify

from .exceptions import (
    LoyaltyError,
    NotFoundError,
    ValidationError,
    InvalidTagError,
    CooldownActiveError,
    IncompleteProfileError,
    InsufficientPointsError,
    AlreadyUsedError,
    PersistenceError,
    DuplicateError,
    InvalidStatusTransitionError,
)

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication (401)
    AUTH_REQUIRED = "AUTH_REQUIRED"

    # Validation Errors (400)
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_FIELD = "MISSING_FIELD"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TAG = "INVALID_TAG"

    # Not Found (404)
    NOT_FOUND = "NOT_FOUND"

    # Conflict (409)
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    STATE_CONFLICT = "STATE_CONFLICT"
    ALREADY_USED = "ALREADY_USED"
    COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"

    # Business Logic Errors (422)
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"
    INCOMPLETE_PROFILE = "INCOMPLETE_PROFILE"

    # Server Errors (500, 503)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"


def error_response(
    message: str,
    code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    status_code: int = 500,
    log_error: bool = True,
    details: Optional[dict] = None,
    extra: Optional[dict] = None
) -> tuple:
    """
    Create a standardized error response.

    Args:
        message: User-friendly error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code
        log_error: Whether to log the error (default True for 500s)
        details: Optional additional details (only logged, not returned to user)
        extra: Optional fields returned to the user alongside message/code

    Returns:
        Tuple of (response, status_code) for Flask
    """
    if log_error and status_code >= 500:
        logger.error(f"API Error [{code}]: {message}", extra={"details": details})
    elif log_error and status_code >= 400:
        logger.warning(f"API Error [{code}]: {message}", extra={"details": details})

    error = {
        "message": message,
        "code": code.value if isinstance(code, ErrorCode) else code
    }
    if extra:
        error.update(extra)

    return jsonify({"error": error}), status_code


def bad_request(message: str, code: ErrorCode = ErrorCode.INVALID_REQUEST) -> tuple:
    """400 Bad Request error."""
    return error_response(message, code, 400, log_error=False)


def unauthorized(message: str = "Authentication required", code: ErrorCode = ErrorCode.AUTH_REQUIRED) -> tuple:
    """401 Unauthorized error."""
    return error_response(message, code, 401, log_error=False)


def not_found(message: str, code: ErrorCode = ErrorCode.NOT_FOUND) -> tuple:
    """404 Not Found error."""
    return error_response(message, code, 404, log_error=False)


def internal_error(message: str = "An unexpected error occurred", details: Optional[dict] = None) -> tuple:
    """500 Internal Server Error."""
    return error_response(message, ErrorCode.INTERNAL_ERROR, 500, log_error=True, details=details)


def incomplete_profile_extra(missing_fields) -> dict:
    """Fields that let the client jump straight to profile completion."""
    return {
        "missing_fields": list(missing_fields),
        "action": "complete_profile",
        "profile_path": current_app.config.get('PROFILE_COMPLETION_PATH', '/account/profile'),
    }


def loyalty_error_response(error: LoyaltyError) -> tuple:
    """Translate a LoyaltyError into the standard error envelope."""
    if isinstance(error, CooldownActiveError):
        return error_response(
            error.message, ErrorCode.COOLDOWN_ACTIVE, 409, log_error=False,
            extra={"retry_at": error.retry_at.isoformat()}
        )
    if isinstance(error, IncompleteProfileError):
        return error_response(
            error.message, ErrorCode.INCOMPLETE_PROFILE, 422, log_error=False,
            extra=incomplete_profile_extra(error.missing_fields)
        )
    if isinstance(error, InsufficientPointsError):
        return error_response(
            error.message, ErrorCode.INSUFFICIENT_POINTS, 422, log_error=False,
            extra={"current": error.current, "required": error.required}
        )
    if isinstance(error, AlreadyUsedError):
        return error_response(error.message, ErrorCode.ALREADY_USED, 409, log_error=False)
    if isinstance(error, InvalidTagError):
        return error_response(error.message, ErrorCode.INVALID_TAG, 400, log_error=False)
    if isinstance(error, ValidationError):
        return error_response(error.message, error.code, 400, log_error=False)
    if isinstance(error, NotFoundError):
        return error_response(error.message, error.code, 404, log_error=False)
    if isinstance(error, (DuplicateError, InvalidStatusTransitionError)):
        return error_response(error.message, error.code, 409, log_error=False)
    if isinstance(error, PersistenceError):
        return error_response(error.message, ErrorCode.PERSISTENCE_ERROR, 503)
    return error_response(error.message, error.code, 400)
