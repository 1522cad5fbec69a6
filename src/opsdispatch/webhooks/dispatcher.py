"""Webhook fan-out: one alert to every matching subscription."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field

from opsdispatch.channels.base import OutgoingMessage
from opsdispatch.channels.whatsapp import EvolutionWhatsAppAdapter
from opsdispatch.config.constants import DEFAULT_HTTP_TIMEOUT_SECONDS, DEFAULT_TIMEZONE
from opsdispatch.errors import ConfigurationError, DispatchError
from opsdispatch.reports.render import format_datetime
from opsdispatch.store.integrations import CredentialStore
from opsdispatch.store.models import Integration, IntegrationKind, WebhookSubscription
from opsdispatch.store.subscriptions import SubscriptionStore
from opsdispatch.ticketing.glpi import DEFAULT_TICKET_STATUS, GLPIClient
from opsdispatch.webhooks.models import AlertEvent

logger = logging.getLogger("opsdispatch.webhooks")

ACTION_TICKET = "glpi_ticket"
ACTION_MESSAGE = "whatsapp_message"


class ActionResult(BaseModel):
    type: str
    success: bool
    result: Any = None
    error: str | None = None
    error_kind: str | None = None
    instance_status: Any = None


class SubscriptionResult(BaseModel):
    webhook_id: str
    webhook_name: str
    actions: list[ActionResult] = Field(default_factory=list)
    error: str | None = None


class DispatchSummary(BaseModel):
    success: bool = True
    message: str
    trigger_type: str
    processed_webhooks: int = 0
    results: list[SubscriptionResult] = Field(default_factory=list)


def build_alert_ticket(event: AlertEvent, entity_id: int) -> dict[str, Any]:
    """GLPI ticket input for an alert; severity 4+ raises urgency/impact/priority."""
    level = 4 if event.severity_level >= 4 else 3
    state = "Resolvido" if event.is_resolved else "Ativo"
    content = (
        f"Problema: {event.problem_name}\n"
        f"Host: {event.host_name}\n"
        f"Severidade: {event.severity}\n"
        f"Event ID: {event.event_id}\n"
        f"Status: {state}\n\n"
        "Este chamado foi criado automaticamente pelo webhook do Zabbix."
    )
    return {
        "name": f"Zabbix: {event.problem_name}",
        "content": content,
        "urgency": level,
        "impact": level,
        "priority": level,
        "status": DEFAULT_TICKET_STATUS,
        "type": 1,
        "entities_id": entity_id,
    }


def default_alert_message(event: AlertEvent) -> str:
    state = "Resolvido" if event.is_resolved else "Ativo"
    return (
        "🚨 Alerta Zabbix\n\n"
        f"Problema: {event.problem_name}\n"
        f"Host: {event.host_name}\n"
        f"Severidade: {event.severity}\n"
        f"Status: {state}"
    )


def render_alert_message(template: str, event: AlertEvent, now_local: datetime) -> str:
    """Fill ``{problem_name}``, ``{host_name}``, ``{severity}``, ``{timestamp}``."""
    message = template or default_alert_message(event)
    replacements = {
        "{problem_name}": event.problem_name,
        "{host_name}": event.host_name,
        "{severity}": event.severity,
        "{timestamp}": format_datetime(now_local),
    }
    for placeholder, value in replacements.items():
        message = message.replace(placeholder, value)
    return message


class WebhookDispatcher:
    """Runs the configured actions of every subscription matching an alert.

    Counters are bumped before any action runs. A failing action never
    affects its sibling action or the other subscriptions.
    """

    def __init__(
        self,
        subscriptions: SubscriptionStore,
        credentials: CredentialStore,
        ticket_client_factory: Callable[[Integration], GLPIClient] | None = None,
        adapter_factory: Callable[[Integration], EvolutionWhatsAppAdapter] | None = None,
        timezone: str = DEFAULT_TIMEZONE,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._subscriptions = subscriptions
        self._credentials = credentials
        self._ticket_client_factory = ticket_client_factory or (
            lambda integration: GLPIClient.from_integration(integration, timeout=timeout)
        )
        self._adapter_factory = adapter_factory or (
            lambda integration: EvolutionWhatsAppAdapter.from_integration(integration, timeout=timeout)
        )
        self._tz = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(UTC))

    async def dispatch(self, event: AlertEvent) -> DispatchSummary:
        """Fan an alert out. Raises StoreError if subscriptions cannot be read."""
        trigger_type = event.trigger_type
        matches = self._subscriptions.matching(trigger_type)
        logger.info(
            "Alert '%s' on %s (%s): %d subscription(s)",
            event.problem_name,
            event.host_name,
            trigger_type,
            len(matches),
        )
        if not matches:
            return DispatchSummary(message="No active webhooks configured", trigger_type=trigger_type)

        results = [await self._process(subscription, event) for subscription in matches]
        return DispatchSummary(
            message="Webhooks processed successfully",
            trigger_type=trigger_type,
            processed_webhooks=len(results),
            results=results,
        )

    async def _process(self, subscription: WebhookSubscription, event: AlertEvent) -> SubscriptionResult:
        result = SubscriptionResult(webhook_id=subscription.id, webhook_name=subscription.name)
        try:
            self._subscriptions.mark_triggered(subscription.id, self._clock())
        except DispatchError as exc:
            logger.error("Could not update counters for webhook %s: %s", subscription.id, exc)
            result.error = exc.message
            return result

        actions = subscription.actions
        if actions.create_ticket:
            result.actions.append(await self._create_ticket(subscription, event))
        if actions.send_message and actions.message_target:
            result.actions.append(await self._send_message(subscription, event))
        return result

    def _credential(self, owner_id: str, kind: IntegrationKind) -> Integration:
        credential = self._credentials.get_credential(owner_id, kind)
        if credential is None:
            raise ConfigurationError(
                f"Integração {kind.label} não configurada para o usuário {owner_id}"
            )
        return credential

    async def _create_ticket(self, subscription: WebhookSubscription, event: AlertEvent) -> ActionResult:
        try:
            credential = self._credential(subscription.owner_id, IntegrationKind.GLPI)
            client = self._ticket_client_factory(credential)
            created = await client.open_ticket(
                build_alert_ticket(event, subscription.actions.ticket_entity_id)
            )
        except DispatchError as exc:
            logger.warning("Webhook %s ticket action failed: %s", subscription.id, exc.message)
            return ActionResult(type=ACTION_TICKET, success=False, error=exc.message, error_kind=exc.kind)
        except Exception as exc:
            logger.exception("Webhook %s ticket action crashed", subscription.id)
            return ActionResult(type=ACTION_TICKET, success=False, error=str(exc), error_kind="unexpected")
        return ActionResult(type=ACTION_TICKET, success=True, result=created.response)

    async def _send_message(self, subscription: WebhookSubscription, event: AlertEvent) -> ActionResult:
        instance_status = None
        try:
            credential = self._credential(subscription.owner_id, IntegrationKind.EVOLUTION_API)
            adapter = self._adapter_factory(credential)
            instance_status = await adapter.connection_state()
            text = render_alert_message(
                subscription.actions.custom_message_template,
                event,
                self._clock().astimezone(self._tz),
            )
            receipt = await adapter.send(
                OutgoingMessage(text=text, recipient=subscription.actions.message_target)
            )
        except DispatchError as exc:
            logger.warning("Webhook %s message action failed: %s", subscription.id, exc.message)
            return ActionResult(
                type=ACTION_MESSAGE,
                success=False,
                error=exc.message,
                error_kind=exc.kind,
                instance_status=instance_status,
            )
        except Exception as exc:
            logger.exception("Webhook %s message action crashed", subscription.id)
            return ActionResult(
                type=ACTION_MESSAGE,
                success=False,
                error=str(exc),
                error_kind="unexpected",
                instance_status=instance_status,
            )
        return ActionResult(
            type=ACTION_MESSAGE,
            success=True,
            result=receipt.response,
            instance_status=instance_status,
        )
