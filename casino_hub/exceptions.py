"""
Exception hierarchy for Casino Hub.

Errors carry structured context so that the WebSocket layer can turn them
into typed replies and the logs show which session triggered them.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from .error_types import ErrorType, message_for
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Who and what an error is about."""

    session_id: str | None = None
    nickname: str | None = None
    message_type: str | None = None
    remote_address: str | None = None
    occurred_at: datetime = field(default_factory=datetime.now)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["occurred_at"] = self.occurred_at.isoformat()
        return data


class CasinoHubError(Exception):
    """
    Base exception for all Casino Hub errors.

    Subclasses set error_type, which selects the message shown to clients,
    and log_level, which selects how loudly the error is logged on creation.
    """

    error_type: ErrorType = ErrorType.INTERNAL_ERROR
    log_level: str = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context if context is not None else ErrorContext()
        self.details = dict(details or {})
        self.user_friendly = user_friendly or message_for(self.error_type)
        self._log()

    def _log(self) -> None:
        log_method = getattr(logger, self.log_level, logger.error)
        log_method(
            self.message,
            error_class=type(self).__name__,
            error_type=self.error_type.value,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "context": self.context.to_dict(),
            "details": self.details,
        }


class ValidationError(CasinoHubError):
    """Client input failed validation."""

    error_type = ErrorType.INVALID_FORMAT
    log_level = "info"

    def __init__(self, message: str, context: ErrorContext | None = None, field_name: str | None = None, **kwargs):
        self.field_name = field_name
        super().__init__(message, context, **kwargs)
        if field_name:
            self.details["field"] = field_name


class NicknameError(ValidationError):
    """A nickname was rejected during registration."""

    def __init__(self, message: str, error_type: ErrorType, context: ErrorContext | None = None, **kwargs):
        # Instance attribute shadows the class default so user_friendly resolves per kind
        self.error_type = error_type
        super().__init__(message, context, field_name="nickname", **kwargs)


class ConnectionLimitExceeded(CasinoHubError):
    """The hub is at its connection cap and refused a new connection."""

    error_type = ErrorType.CONNECTION_LIMIT_EXCEEDED
    log_level = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, max_connections: int = 0, **kwargs):
        super().__init__(message, context, **kwargs)
        self.max_connections = max_connections
        self.details["max_connections"] = max_connections


def create_error_context(**kwargs: Any) -> ErrorContext:
    """Shorthand for ErrorContext(**kwargs)."""
    return ErrorContext(**kwargs)
