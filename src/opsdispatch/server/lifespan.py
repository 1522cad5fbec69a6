"""Application lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI

logger = logging.getLogger("opsdispatch.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown hooks for opsdispatch."""
    settings = app.state.settings

    # --- Startup ---
    logger.info(
        "opsdispatch server starting: host=%s, port=%d, data_dir=%s",
        settings.server.host,
        settings.server.port,
        settings.data_dir,
    )

    scheduler_engine = getattr(app.state, "scheduler_engine", None)
    if scheduler_engine is not None:
        await scheduler_engine.start()

    app.state.started_at = datetime.now(UTC)

    yield

    # --- Shutdown ---
    if scheduler_engine is not None:
        await scheduler_engine.stop()

    logger.info("opsdispatch server shutting down.")
