"""FastAPI application factory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI

from opsdispatch import __version__
from opsdispatch.factory import (
    create_dispatcher,
    create_report_runner,
    create_stores,
    create_ticket_runner,
)
from opsdispatch.scheduler.engine import SchedulerEngine
from opsdispatch.server.lifespan import lifespan
from opsdispatch.server.routes.health import health_router
from opsdispatch.server.routes.jobs import jobs_router
from opsdispatch.server.routes.webhooks import webhooks_router

if TYPE_CHECKING:
    from opsdispatch.config.settings import Settings

logger = logging.getLogger("opsdispatch.server")


def create_app(settings: Settings) -> FastAPI:
    """Build the FastAPI application.

    Stores, runners, and the webhook dispatcher are created once and kept on
    ``app.state`` for route handlers. The scheduler engine is only created
    when ``scheduler.enabled`` is set; the lifespan starts and stops it.
    """
    app = FastAPI(
        title="opsdispatch",
        version=__version__,
        description="Scheduled GLPI tickets, WhatsApp reports, and Zabbix alert fan-out",
        lifespan=lifespan,
    )

    stores = create_stores(settings)
    ticket_runner = create_ticket_runner(settings, stores)
    report_runner = create_report_runner(settings, stores)

    scheduler_engine = None
    if settings.scheduler.enabled:
        scheduler_engine = SchedulerEngine(settings, [ticket_runner, report_runner])
    else:
        logger.info("Background scheduler disabled; pipelines run only on demand")

    app.state.settings = settings
    app.state.stores = stores
    app.state.ticket_runner = ticket_runner
    app.state.report_runner = report_runner
    app.state.dispatcher = create_dispatcher(settings, stores)
    app.state.scheduler_engine = scheduler_engine

    app.include_router(health_router)
    app.include_router(jobs_router)
    app.include_router(webhooks_router)
    return app
