"""
Pydantic-based configuration models for Casino Hub.

Type-safe, validated configuration using Pydantic BaseSettings. Every value
can be overridden from the environment or a local .env file.
"""

import json
from typing import Annotated, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_RESERVED_NICKNAME_WORDS = ["admin", "moderator", "system", "система", "админ", "модератор"]

# Nested models are built through default_factory, so each reads .env itself
_DOTENV = {"env_file": ".env", "env_file_encoding": "utf-8"}


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a string from the environment as JSON list or CSV."""
    if candidate is None:
        return []
    if isinstance(candidate, list):
        return [str(item).strip() for item in candidate if str(item).strip()]
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    # Hosting platforms hand the port over as plain PORT
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("SERVER_PORT", "PORT", "port"),
        description="Server port",
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1-65535")
            raise ValueError("Port must be between 1 and 65535")
        return v

    model_config = {
        "env_prefix": "SERVER_",
        **_DOTENV,
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="human", description="Log format")
    disable_logging: bool = Field(default=False, description="Disable all logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "production"]
        if v not in valid_environments:
            logger.error("Invalid logging environment", environment=v, valid_environments=valid_environments)
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "human"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", **_DOTENV, "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict shape expected by setup_enhanced_logging."""
        return {
            "environment": self.environment,
            "level": self.level,
            "format": self.format,
            "disable_logging": self.disable_logging,
        }


class HubConfig(BaseSettings):
    """Broadcast hub limits, buffer sizes and timer intervals."""

    # Connections and frames
    max_connections: int = Field(default=500, description="Hard cap on live connections")
    max_payload_bytes: int = Field(default=16 * 1024, description="Maximum inbound frame size in bytes")
    send_queue_size: int = Field(default=256, description="Outbound frames buffered per connection")

    # Text limits
    chat_max_length: int = Field(default=200, description="Maximum chat message length")
    game_max_length: int = Field(default=40, description="Maximum game name length")

    # History buffers
    chat_history_size: int = Field(default=40, description="Chat entries retained")
    win_history_size: int = Field(default=50, description="Win entries retained")
    chat_snapshot_size: int = Field(default=25, description="Chat entries sent on connect")
    win_snapshot_size: int = Field(default=15, description="Win entries sent on connect")
    api_wins_limit: int = Field(default=20, description="Win entries returned by /api/wins")
    history_floor: int = Field(default=20, description="Buffer size after a memory-pressure trim")

    # Chat rate limiting
    rate_limit_max_messages: int = Field(default=6, description="Chat messages allowed per window")
    rate_limit_window_seconds: float = Field(default=10.0, description="Chat rate limit window in seconds")
    rate_limit_sweep_seconds: float = Field(default=60.0, description="Stale rate limit sweep interval")

    # Wins
    win_amount_cap: int = Field(default=10_000_000, description="Largest accepted win amount (inclusive)")
    big_win_threshold: int = Field(default=500, description="Wins at or above this amount are announced in chat")

    # Timers
    heartbeat_interval_seconds: float = Field(default=25.0, description="Liveness probe interval")
    online_count_debounce_seconds: float = Field(default=0.5, description="Online count coalescing window")
    online_count_interval_seconds: float = Field(default=10.0, description="Periodic online count broadcast")
    memory_check_interval_seconds: float = Field(default=30.0, description="Memory watchdog interval")
    memory_threshold_mb: float = Field(default=380.0, description="RSS above which history is trimmed")
    shutdown_grace_seconds: float = Field(default=5.0, description="Time allowed for clean socket closure")

    # Presentation
    timezone: str = Field(default="Europe/Moscow", description="Timezone for clock-time strings")

    reserved_nickname_words: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_RESERVED_NICKNAME_WORDS),
        description="Substrings that may not appear in a nickname",
    )

    @field_validator(
        "max_connections",
        "max_payload_bytes",
        "send_queue_size",
        "chat_max_length",
        "game_max_length",
        "chat_history_size",
        "win_history_size",
        "rate_limit_max_messages",
        "win_amount_cap",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate limits are at least 1."""
        if v < 1:
            raise ValueError("Hub limits must be at least 1")
        return v

    @field_validator(
        "rate_limit_window_seconds",
        "rate_limit_sweep_seconds",
        "heartbeat_interval_seconds",
        "online_count_interval_seconds",
        "memory_check_interval_seconds",
        "memory_threshold_mb",
    )
    @classmethod
    def validate_positive_interval(cls, v: float) -> float:
        """Validate intervals are strictly positive."""
        if v <= 0:
            raise ValueError("Intervals and thresholds must be positive")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone is known to zoneinfo."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{v}'") from e
        return v

    @field_validator("reserved_nickname_words", mode="before")
    @classmethod
    def parse_reserved_words(cls, v: Any) -> list[str]:
        """Accept JSON arrays or comma-separated strings."""
        return [word.lower() for word in _parse_env_list(v)]

    @model_validator(mode="after")
    def validate_snapshot_sizes(self) -> "HubConfig":
        """Snapshots and trims may not exceed the buffers they read from."""
        if self.chat_snapshot_size > self.chat_history_size:
            raise ValueError("chat_snapshot_size cannot exceed chat_history_size")
        if self.win_snapshot_size > self.win_history_size:
            raise ValueError("win_snapshot_size cannot exceed win_history_size")
        if self.history_floor < 0:
            raise ValueError("history_floor cannot be negative")
        return self

    model_config = {"env_prefix": "HUB_", **_DOTENV, "case_sensitive": False, "extra": "ignore"}


class CORSConfig(BaseSettings):
    """CORS configuration for the HTTP endpoints."""

    allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"], description="Allowed origins")
    allow_methods: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["GET"], description="Allowed methods")
    allow_headers: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"], description="Allowed headers")

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def parse_list(cls, v: Any) -> list[str]:
        """Accept JSON arrays or comma-separated strings."""
        return _parse_env_list(v)

    model_config = {"env_prefix": "CORS_", **_DOTENV, "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    This is the main configuration class that aggregates all other configs.
    Access via get_config() singleton function.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    hub: HubConfig = Field(default_factory=HubConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)

    model_config = {**_DOTENV, "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """
        Convert to a plain dict.

        Used by the logging setup, which takes a dict so it can run before
        any other module is imported.
        """
        return {
            "host": self.server.host,
            "port": self.server.port,
            "logging": self.logging.to_legacy_dict(),
            "hub": self.hub.model_dump(),
            "cors": self.cors.model_dump(),
        }
