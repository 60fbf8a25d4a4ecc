"""
Centralized error types and constants for Casino Hub.

This module defines standardized error types and user-facing messages to
ensure consistent error replies across the WebSocket protocol.
"""

from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    # Protocol
    INVALID_FORMAT = "invalid_format"

    # Nickname validation
    NICKNAME_TOO_SHORT = "nickname_too_short"
    NICKNAME_TOO_LONG = "nickname_too_long"
    NICKNAME_TAKEN = "nickname_taken"
    NICKNAME_FORBIDDEN = "nickname_forbidden"

    # Session state
    NOT_REGISTERED = "not_registered"

    # Policy
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    CONNECTION_LIMIT_EXCEEDED = "connection_limit_exceeded"

    # System
    INTERNAL_ERROR = "internal_error"


# Common error messages for consistency
class ErrorMessages:
    """Common error messages for consistent user experience."""

    # Nickname validation
    NICKNAME_TOO_SHORT = "Nickname must be at least 2 characters"
    NICKNAME_TOO_LONG = "Nickname must be at most 24 characters"
    NICKNAME_TAKEN = "This nickname is already taken"
    NICKNAME_FORBIDDEN = "This nickname is not allowed"

    # Session state
    NOT_REGISTERED = "Please register first"

    # Policy
    RATE_LIMIT_EXCEEDED = "Too many messages, please wait"
    SERVER_FULL = "Server full"

    # System
    INTERNAL_ERROR = "An internal error occurred"
    SERVER_SHUTTING_DOWN = "Server shutting down"


_MESSAGES_BY_TYPE: dict[ErrorType, str] = {
    ErrorType.NICKNAME_TOO_SHORT: ErrorMessages.NICKNAME_TOO_SHORT,
    ErrorType.NICKNAME_TOO_LONG: ErrorMessages.NICKNAME_TOO_LONG,
    ErrorType.NICKNAME_TAKEN: ErrorMessages.NICKNAME_TAKEN,
    ErrorType.NICKNAME_FORBIDDEN: ErrorMessages.NICKNAME_FORBIDDEN,
    ErrorType.NOT_REGISTERED: ErrorMessages.NOT_REGISTERED,
    ErrorType.RATE_LIMIT_EXCEEDED: ErrorMessages.RATE_LIMIT_EXCEEDED,
    ErrorType.CONNECTION_LIMIT_EXCEEDED: ErrorMessages.SERVER_FULL,
    ErrorType.INTERNAL_ERROR: ErrorMessages.INTERNAL_ERROR,
}


def message_for(error_type: ErrorType) -> str:
    """Return the user-facing message for an error type."""
    return _MESSAGES_BY_TYPE.get(error_type, ErrorMessages.INTERNAL_ERROR)


def create_websocket_error_response(
    error_type: ErrorType,
    message: str | None = None,
    *,
    response_type: str = "error",
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a WebSocket error frame.

    Args:
        error_type: The type of error
        message: User-facing message (defaults to the standard one for error_type)
        response_type: Frame type, "error" or "register_error"
        details: Additional error details (optional, omitted when empty)

    Returns:
        WebSocket error frame dictionary
    """
    response: dict[str, Any] = {
        "type": response_type,
        "message": message or message_for(error_type),
        "error_type": error_type.value,
    }
    if details:
        response["details"] = details
    return response
