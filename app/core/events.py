"""
Event handlers for application lifecycle events.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.core.config import settings

logger = logging.getLogger("crm_import")


async def startup_event_handler() -> None:
    """
    Handle application startup.

    Initialize the database connection and create missing tables.
    """
    logger.info(f"Starting {settings.PROJECT_NAME}")

    try:
        from app.db.session import initialize_database
        await initialize_database()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        # Don't raise error to allow startup to continue

    logger.info(f"✅ {settings.PROJECT_NAME} v{settings.VERSION} startup complete")


async def shutdown_event_handler() -> None:
    """
    Handle application shutdown.

    Close connections properly.
    """
    logger.info(f"Shutting down {settings.PROJECT_NAME}")

    try:
        from app.db.session import close_database_connections
        await close_database_connections()
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")

    logger.info("✅ Application shutdown complete")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: startup before the first request, shutdown after the last."""
    await startup_event_handler()
    yield
    await shutdown_event_handler()
