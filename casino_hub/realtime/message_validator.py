"""
Inbound WebSocket frame validation for Casino Hub.

This module enforces the payload size cap, JSON decoding, a nesting depth
limit and the envelope shape (an object with a string "type"). Anything
that fails is rejected with MessageValidationError; the read loop drops
the frame and keeps the connection open.
"""

import json
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class MessageValidationError(Exception):
    """Raised when an inbound frame fails validation."""

    def __init__(self, message: str, error_type: str = "validation_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(self.message)


class WebSocketMessageValidator:
    """
    Validates inbound frames before dispatch.

    Implements:
    - Payload size cap (UTF-8 bytes)
    - JSON depth limit
    - Envelope shape check
    """

    MAX_MESSAGE_SIZE = 16 * 1024
    MAX_JSON_DEPTH = 8

    def __init__(self, max_message_size: int | None = None, max_json_depth: int | None = None):
        """
        Initialize the message validator.

        Args:
            max_message_size: Maximum frame size in bytes (default: 16KB)
            max_json_depth: Maximum JSON nesting depth (default: 8)
        """
        self.max_message_size = max_message_size or self.MAX_MESSAGE_SIZE
        self.max_json_depth = max_json_depth or self.MAX_JSON_DEPTH

    def validate_size(self, data: str) -> None:
        """
        Validate frame size.

        Raises:
            MessageValidationError: If the frame exceeds the size cap
        """
        size = len(data.encode("utf-8"))
        if size > self.max_message_size:
            logger.warning("Message size exceeds limit", size=size, max_size=self.max_message_size)
            raise MessageValidationError(
                f"Message size {size} bytes exceeds maximum {self.max_message_size} bytes",
                error_type="size_limit_exceeded",
            )

    def _calculate_depth(self, obj: Any, current_depth: int = 0) -> int:
        if current_depth > self.max_json_depth:
            return current_depth
        if isinstance(obj, dict) and obj:
            return max(self._calculate_depth(v, current_depth + 1) for v in obj.values())
        if isinstance(obj, list) and obj:
            return max(self._calculate_depth(item, current_depth + 1) for item in obj)
        return current_depth

    def validate_envelope(self, message: Any) -> dict[str, Any]:
        """
        Check that a decoded frame is an object with a string type.

        Raises:
            MessageValidationError: If the shape is wrong or nesting is too deep
        """
        if not isinstance(message, dict):
            raise MessageValidationError("Message must be a JSON object", error_type="invalid_type")
        if not isinstance(message.get("type"), str):
            raise MessageValidationError("Message must contain a string 'type' field", error_type="missing_type")

        depth = self._calculate_depth(message)
        if depth > self.max_json_depth:
            logger.warning("JSON depth exceeds limit", depth=depth, max_depth=self.max_json_depth)
            raise MessageValidationError(
                f"JSON depth {depth} exceeds maximum {self.max_json_depth}",
                error_type="depth_limit_exceeded",
            )
        return message

    def parse_and_validate(self, data: str, session_id: str | None = None) -> dict[str, Any]:
        """
        Parse and validate a raw text frame.

        This is the main entry point for frame validation.

        Args:
            data: Raw frame text
            session_id: Sender, for log context

        Returns:
            dict: Decoded frame

        Raises:
            MessageValidationError: If validation fails at any stage
        """
        self.validate_size(data)

        try:
            message = json.loads(data)
        except (json.JSONDecodeError, RecursionError) as e:
            logger.debug("Invalid JSON in message", session_id=session_id, error=str(e))
            raise MessageValidationError(f"Invalid JSON: {e}", error_type="json_parse_error") from e

        validated = self.validate_envelope(message)
        logger.debug("Message validation successful", session_id=session_id, message_type=validated["type"])
        return validated
