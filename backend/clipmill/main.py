"""
clipmill HTTP service: task planning, batch execution and queue control.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from . import __version__
from .config import Settings
from .routes import batches, health, tasks
from .service import BatchService

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, service: Optional[BatchService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The BatchService (and its JobQueue) lives for the lifespan of the app
    and is shut down when the app stops.

    Args:
        settings: Runtime settings; read from the environment when omitted
        service: Prebuilt service (tests); built from settings when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        batch_service = service or BatchService(settings or Settings.from_env())
        app.state.batch_service = batch_service
        logger.info(
            f"clipmill service started (concurrency={batch_service.queue.concurrency})"
        )
        try:
            yield
        finally:
            await batch_service.shutdown()
            logger.info("clipmill service stopped")

    app = FastAPI(title="clipmill", version=__version__, lifespan=lifespan)

    app.include_router(health.router)
    app.include_router(tasks.router)
    app.include_router(batches.router)

    @app.get("/")
    async def root():
        return {"service": "clipmill", "status": "running"}

    return app
