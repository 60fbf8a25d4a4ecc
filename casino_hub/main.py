"""
Casino Hub Server - Main Application Entry Point

This module configures logging from the environment, builds the FastAPI
application and runs it under uvicorn.
"""

from .app.factory import create_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

# Early logging setup - must happen before any logger creation
config = get_config()
setup_enhanced_logging(config.to_legacy_dict())

logger = get_logger(__name__)
logger.info("Logging setup completed", environment=config.logging.environment)

# Create the FastAPI application
app = create_app(config)


def main() -> None:
    """Run the server with uvicorn; uvicorn's signal handling drives the lifespan shutdown."""
    import uvicorn

    logger.info("Starting Casino Hub server", host=config.server.host, port=config.server.port)
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        # Use our structlog pipeline for all logging
        log_config=None,
        access_log=True,
        use_colors=False,
    )


if __name__ == "__main__":
    main()
