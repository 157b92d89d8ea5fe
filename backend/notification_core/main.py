"""
Composition root for the notification engine HTTP service.

create_app() builds the NotificationService from engine configuration,
mounts the routers and owns the change bridge lifecycle: the bridge
starts with the app and is destroyed on shutdown.

Run with:
    uvicorn notification_core.main:app
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from notification_core import __version__
from notification_core.api.routes import health, notifications, settings
from notification_core.config.engine_config import EngineConfig, get_engine_config
from notification_core.platform.errors import register_exception_handlers
from notification_core.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(
    config: Optional[EngineConfig] = None,
    service: Optional[NotificationService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Engine configuration (defaults to the cached singleton)
        service: Pre-built service, mainly for tests

    Returns:
        Configured FastAPI app
    """
    if service is None:
        service = NotificationService.from_config(config or get_engine_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.notification_service.start()
        logger.info("Notification engine started")
        try:
            yield
        finally:
            await app.state.notification_service.bridge.astop()
            app.state.notification_service.shutdown()
            logger.info("Notification engine stopped")

    app = FastAPI(
        title="Notification Engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.notification_service = service

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(notifications.router)
    app.include_router(settings.settings_router)
    app.include_router(settings.permissions_router)

    return app


def build_default_app() -> FastAPI:
    configure_logging()
    return create_app()


app = build_default_app()
