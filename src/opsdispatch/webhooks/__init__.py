"""Inbound monitoring alerts and their fan-out to tickets and messages."""

from opsdispatch.webhooks.dispatcher import DispatchSummary, WebhookDispatcher
from opsdispatch.webhooks.models import AlertEvent, parse_alert, trigger_type_for

__all__ = ["AlertEvent", "DispatchSummary", "WebhookDispatcher", "parse_alert", "trigger_type_for"]
