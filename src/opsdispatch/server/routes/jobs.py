"""Batch trigger endpoints for the scheduled pipelines."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from opsdispatch.scheduler.runner import BatchRunner, BatchTrigger

logger = logging.getLogger("opsdispatch.server.jobs")

jobs_router = APIRouter(prefix="/jobs", tags=["Jobs"])


async def _read_trigger(request: Request) -> BatchTrigger:
    """Flags from an optional JSON body; unreadable bodies are ignored."""
    body = await request.body()
    if not body.strip():
        return BatchTrigger()
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        logger.warning("Ignoring non-JSON batch trigger body")
        return BatchTrigger()
    return BatchTrigger.from_payload(payload)


async def _run(runner: BatchRunner, request: Request) -> JSONResponse:
    trigger = await _read_trigger(request)
    report = await runner.run(trigger)
    return JSONResponse(report.as_response(), status_code=report.status_code)


@jobs_router.post("/glpi-tickets/run")
async def run_ticket_batch(request: Request) -> JSONResponse:
    return await _run(request.app.state.ticket_runner, request)


@jobs_router.post("/scheduled-reports/run")
async def run_report_batch(request: Request) -> JSONResponse:
    return await _run(request.app.state.report_runner, request)


@jobs_router.get("/runs")
async def recent_runs(request: Request, limit: int = Query(50, ge=1, le=1000)) -> list[dict]:
    run_log = request.app.state.stores.run_log
    return [record.model_dump(mode="json") for record in run_log.recent(limit=limit)]
