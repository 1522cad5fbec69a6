"""Inbound Zabbix webhook."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from opsdispatch.errors import InvalidPayloadError, StoreError
from opsdispatch.webhooks.models import parse_alert

logger = logging.getLogger("opsdispatch.server.webhooks")

webhooks_router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@webhooks_router.post("/zabbix")
async def zabbix_webhook(request: Request) -> JSONResponse:
    """Parse the alert and fan it out to every matching subscription."""
    body = await request.body()
    try:
        event = parse_alert(body)
    except InvalidPayloadError as exc:
        logger.warning("Rejected Zabbix webhook body: %s", exc.details)
        return JSONResponse(
            {"success": False, "error": exc.message, "details": exc.details},
            status_code=400,
        )

    try:
        summary = await request.app.state.dispatcher.dispatch(event)
    except StoreError as exc:
        logger.error("Webhook subscriptions unavailable: %s", exc)
        return JSONResponse(
            {"success": False, "error": "Erro ao buscar webhooks", "details": exc.message},
            status_code=500,
        )
    except Exception as exc:
        logger.exception("Zabbix webhook processing failed")
        return JSONResponse(
            {"success": False, "error": "Erro interno do servidor", "details": str(exc)},
            status_code=500,
        )

    return JSONResponse(summary.model_dump(mode="json"))
