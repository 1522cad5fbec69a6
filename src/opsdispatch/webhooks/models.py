"""Inbound Zabbix alert parsing."""

from __future__ import annotations

import json
import time
from typing import Any

from pydantic import BaseModel, Field

from opsdispatch.config.constants import TRIGGER_PROBLEM_CREATED, TRIGGER_PROBLEM_RESOLVED
from opsdispatch.errors import InvalidPayloadError

STATUS_RESOLVED = "0"
STATUS_PROBLEM = "1"


def _epoch_ms() -> str:
    return str(int(time.time() * 1000))


class AlertEvent(BaseModel):
    """A monitoring alert, normalized from Zabbix's webhook fields."""

    problem_name: str = "Problema desconhecido"
    host_name: str = "Host desconhecido"
    severity: str = "3"
    event_id: str = Field(default_factory=_epoch_ms)
    trigger_id: str | None = None
    status: str = STATUS_PROBLEM
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def trigger_type(self) -> str:
        return trigger_type_for(self.status)

    @property
    def severity_level(self) -> int:
        """Numeric severity; anything unparseable counts as 3."""
        try:
            return int(str(self.severity).strip())
        except ValueError:
            return 3

    @property
    def is_resolved(self) -> bool:
        return self.status == STATUS_RESOLVED


def trigger_type_for(status: str) -> str:
    """Zabbix status ``0`` means resolved; everything else is a new problem."""
    if status == STATUS_RESOLVED:
        return TRIGGER_PROBLEM_RESOLVED
    return TRIGGER_PROBLEM_CREATED


def _pick(data: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def placeholder_alert() -> AlertEvent:
    """Synthetic alert used when the webhook is called with an empty body."""
    return AlertEvent(
        problem_name="Teste de webhook vazio",
        host_name="servidor-teste",
        severity="3",
        status=STATUS_PROBLEM,
    )


def parse_alert(body: bytes) -> AlertEvent:
    """Parse a raw webhook body.

    An empty or whitespace-only body yields the placeholder alert. Anything
    that is not a JSON object raises InvalidPayloadError.
    """
    text = body.decode("utf-8", errors="replace") if body else ""
    if not text.strip():
        return placeholder_alert()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidPayloadError(
            "Invalid JSON format in request body", details=str(exc)
        ) from exc
    if not isinstance(data, dict):
        raise InvalidPayloadError(
            "Invalid JSON format in request body", details="expected a JSON object"
        )

    fields = {
        "problem_name": _pick(data, "problem_name", "subject"),
        "host_name": _pick(data, "host_name", "host"),
        "severity": _pick(data, "severity"),
        "event_id": _pick(data, "event_id", "eventid"),
        "trigger_id": _pick(data, "trigger_id", "triggerid"),
        "status": _pick(data, "status"),
    }
    return AlertEvent(raw=data, **{k: v for k, v in fields.items() if v is not None})
