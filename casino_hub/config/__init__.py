"""
Configuration for Casino Hub.

Settings come from the environment (and an optional .env file) through the
pydantic-settings models in config.models:

    from casino_hub.config import get_config

    hub_config = get_config().hub
"""

import os
import sys
from functools import lru_cache

from .models import AppConfig, CORSConfig, HubConfig, LoggingConfig, ServerConfig

__all__ = ["get_config", "reset_config", "AppConfig", "CORSConfig", "HubConfig", "LoggingConfig", "ServerConfig"]


def _running_under_pytest() -> bool:
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


@lru_cache(maxsize=1)
def _load_config() -> AppConfig:
    return AppConfig()


def get_config() -> AppConfig:
    """
    Return the application configuration.

    The first call loads and validates it; later calls reuse that instance.
    Under pytest every call builds a new instance so tests can change the
    environment with monkeypatch.

    Raises:
        pydantic.ValidationError: If an environment value is invalid
    """
    if _running_under_pytest():
        return AppConfig()
    return _load_config()


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() reloads it."""
    _load_config.cache_clear()
