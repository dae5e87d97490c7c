"""FastAPI application factory."""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from shaman.api.auth import TokenAuthMiddleware
from shaman.api.responses import register_exception_handlers
from shaman.api.routes import router
from shaman.core.config import Settings, get_settings
from shaman.core.repository import ResourceRepository, build_repository
from shaman.utils.decorators import init_sentry

# Configure logging for the application
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[ResourceRepository] = None,
) -> FastAPI:
    """
    Build the record API.

    Args:
        settings: Configuration; read from the environment when omitted
        repository: Record store; chosen from settings when omitted

    Returns:
        The application with auth, routes and error handlers installed
    """
    if settings is None:
        settings = get_settings()

    if repository is None:
        repository = build_repository(settings)

    logging.getLogger("shaman").setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        """Application lifespan handler."""
        sentry = init_sentry(settings)

        logger.info("Shaman starting...")
        logger.info(f"Record store: {type(repository).__name__}")
        logger.info(f"Auth header: {settings.auth_header}")
        logger.info(f"Sentry: {'enabled' if sentry else 'disabled'}")

        yield

        logger.info("Shaman shutting down...")
        await repository.close()

    app = FastAPI(
        title="Shaman",
        description="Record management API for a DNS database",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.repository = repository

    app.add_middleware(
        TokenAuthMiddleware,
        token=settings.api_token,
        header=settings.auth_header,
    )
    register_exception_handlers(app)
    app.include_router(router)

    return app
