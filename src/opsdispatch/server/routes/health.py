"""Health and status endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from opsdispatch import __version__

health_router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class PipelineStatus(BaseModel):
    name: str
    active_jobs: int
    due_now: int
    next_fire: str | None = None
    last_run_status: str | None = None
    last_run_at: str | None = None


class StatusResponse(BaseModel):
    version: str
    timezone: str
    batch_cron: str
    scheduler_enabled: bool
    scheduler_running: bool
    server_host: str
    server_port: int
    started_at: str
    data_dir: str
    pipelines: list[PipelineStatus]
    active_webhooks: int = 0


@health_router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    started_at = getattr(request.app.state, "started_at", datetime.now(UTC))
    uptime = (datetime.now(UTC) - started_at).total_seconds()
    return HealthResponse(
        status="ok",
        version=__version__,
        uptime_seconds=round(uptime, 1),
    )


@health_router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    settings = request.app.state.settings
    stores = request.app.state.stores
    started_at = getattr(request.app.state, "started_at", datetime.now(UTC))

    engine = getattr(request.app.state, "scheduler_engine", None)
    fire_times = engine.next_fire_times() if engine is not None else {}
    now = datetime.now(UTC)

    pipelines: list[PipelineStatus] = []
    for runner, store in (
        (request.app.state.ticket_runner, stores.tickets),
        (request.app.state.report_runner, stores.reports),
    ):
        store.load()
        active = store.find_active()
        last = next(iter(stores.run_log.for_job(runner.name, limit=1)), None)
        pipelines.append(
            PipelineStatus(
                name=runner.name,
                active_jobs=len(active),
                due_now=sum(
                    1
                    for job in active
                    if job.next_execution is not None and job.next_execution <= now
                ),
                next_fire=fire_times.get(runner.name),
                last_run_status=last.status if last else None,
                last_run_at=last.created_at.isoformat() if last else None,
            )
        )

    stores.subscriptions.load()
    return StatusResponse(
        version=__version__,
        timezone=settings.scheduler.timezone,
        batch_cron=settings.scheduler.batch_cron,
        scheduler_enabled=settings.scheduler.enabled,
        scheduler_running=bool(engine is not None and engine.running),
        server_host=settings.server.host,
        server_port=settings.server.port,
        started_at=started_at.isoformat(),
        data_dir=str(settings.data_dir),
        pipelines=pipelines,
        active_webhooks=sum(1 for s in stores.subscriptions.all() if s.is_active),
    )
