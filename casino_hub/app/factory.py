"""
FastAPI application factory for Casino Hub.

This module handles FastAPI app creation, middleware configuration,
router registration and creation of the BroadcastHub.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..api.monitoring import monitoring_router
from ..api.real_time import realtime_router
from ..config import AppConfig, get_config
from ..realtime.hub import BroadcastHub
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration (default: get_config())

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    config = config or get_config()

    app = FastAPI(
        title="Casino Hub",
        description="Real-time chat, live wins and online count over WebSocket",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.hub = BroadcastHub(config.hub)

    logger.info(
        "CORS configuration",
        allow_origins=config.cors.allow_origins,
        allow_methods=config.cors.allow_methods,
        allow_headers=config.cors.allow_headers,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.allow_origins,
        allow_methods=config.cors.allow_methods,
        allow_headers=config.cors.allow_headers,
    )

    app.include_router(monitoring_router)
    app.include_router(realtime_router)

    return app
