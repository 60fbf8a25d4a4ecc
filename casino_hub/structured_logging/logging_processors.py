"""
Logging processors for structlog event processing.

This module provides processors for sanitizing sensitive data, adding correlation IDs,
and keeping user-supplied text from bloating log lines.
"""

import re
import uuid
from typing import Any

# Sensitive patterns that should be redacted
# These patterns match whole words or specific suffixes/prefixes
_SENSITIVE_PATTERNS = [
    r"\bpassword\b",
    r"\btoken\b",
    r"\bsecret\b",
    r"_key\b",  # Matches fields ending with _key (api_key, private_key, etc.)
    r"^key$",
    r"\bcredential\b",
    r"\bauth\b",
    r"\bauthorization\b",
    r"\bcookie\b",
]

# Safe field names that should never be redacted even if they match patterns
_SAFE_FIELDS = {
    "session_key",
    "event_key",
}

# Fields carrying user-supplied text that may be long
_TEXT_FIELDS = ("text", "raw", "nickname", "game", "data")

MAX_LOGGED_TEXT_LENGTH = 120


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive data from log entries.

    This processor redacts values whose field names look like credentials
    (tokens, passwords, cookies) so they never reach a log sink.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        """Recursively sanitize dictionary values."""
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            if isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
                continue
            key_lower = str(key).lower()
            if key_lower in _SAFE_FIELDS:
                sanitized[key] = value
            elif any(re.search(pattern, key_lower) for pattern in _SENSITIVE_PATTERNS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def add_correlation_id(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add correlation ID to log entries if not already present.

    A correlation ID bound through contextvars (for example the session ID of
    the connection being served) wins over a freshly generated one.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to enhance

    Returns:
        Enhanced event dictionary with correlation ID
    """
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = str(uuid.uuid4())

    return event_dict


def truncate_user_text(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Shorten user-supplied text fields before rendering.

    Chat text and raw frames come from untrusted clients; keeping only a prefix
    stops a flood of near-maximum payloads from dominating the log volume.
    """
    for field in _TEXT_FIELDS:
        value = event_dict.get(field)
        if isinstance(value, str) and len(value) > MAX_LOGGED_TEXT_LENGTH:
            event_dict[field] = value[:MAX_LOGGED_TEXT_LENGTH] + "..."
    return event_dict
