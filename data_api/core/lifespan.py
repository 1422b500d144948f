"""
Application lifespan handler.
Manages startup and shutdown events for the FastAPI application.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from data_api.db import close_database_engine, get_engine
from data_api.models import Base
from kernel.config.logging import get_logger, setup_logging
from kernel.config.settings import settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    # Initialize logging
    setup_logging()

    # Validate production settings before startup
    config_errors = settings.validate_production_settings()
    if config_errors:
        for error in config_errors:
            logger.error("Configuration error: {ConfigurationError}", error)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(config_errors)}. "
                "Server will not start with insecure configuration."
            )

    # Startup
    logger.info(
        "Starting {AppName} on port {Port} ({Environment})",
        settings.app_name,
        settings.api_port,
        settings.environment,
    )

    if settings.create_schema_on_startup:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")

    yield

    # Shutdown
    logger.info("Shutting down {AppName}", settings.app_name)
    await close_database_engine()
