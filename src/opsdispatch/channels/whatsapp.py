"""WhatsApp channel adapter: Evolution API gateway.

Evolution API deployments disagree on the sendText route, payload shape, and
auth header. The adapter holds an ordered tuple of request strategies and
tries them in turn; the first 2xx answer wins.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from opsdispatch.channels.base import ChannelAdapter, DeliveryReceipt, OutgoingMessage
from opsdispatch.config.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from opsdispatch.errors import ConfigurationError, NetworkError, UpstreamAPIError
from opsdispatch.store.models import Integration

logger = logging.getLogger("opsdispatch.channels.whatsapp")

DEFAULT_INSTANCE = "main_instance"


@dataclass(frozen=True)
class SendTarget:
    """Everything a strategy needs to build one request."""

    base_url: str
    instance: str
    api_token: str
    number: str
    text: str


@dataclass(frozen=True)
class SendRequest:
    path: str
    headers: dict[str, str]
    json: dict[str, Any]
    method: str = "POST"


@dataclass(frozen=True)
class SendStrategy:
    name: str
    build: Callable[[SendTarget], SendRequest]


@dataclass
class _Attempt:
    strategy: str
    status_code: int | None = None
    error: str | None = None
    response: Any = field(default=None, repr=False)


def _apikey(target: SendTarget) -> dict[str, str]:
    return {"Content-Type": "application/json", "apikey": target.api_token}


def _v2_path(target: SendTarget) -> SendRequest:
    return SendRequest(
        path=f"/message/sendText/{target.instance}",
        headers=_apikey(target),
        json={"number": target.number, "text": target.text},
    )


def _instance_prefixed_path(target: SendTarget) -> SendRequest:
    return SendRequest(
        path=f"/{target.instance}/message/sendText",
        headers=_apikey(target),
        json={"number": target.number, "text": target.text},
    )


def _legacy_text_message(target: SendTarget) -> SendRequest:
    return SendRequest(
        path=f"/message/sendText/{target.instance}",
        headers=_apikey(target),
        json={
            "number": target.number,
            "options": {"delay": 1200, "presence": "composing"},
            "textMessage": {"text": target.text},
        },
    )


def _bearer_auth(target: SendTarget) -> SendRequest:
    return SendRequest(
        path=f"/message/sendText/{target.instance}",
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {target.api_token}",
        },
        json={"number": target.number, "text": target.text},
    )


DEFAULT_STRATEGIES: tuple[SendStrategy, ...] = (
    SendStrategy("v2_path", _v2_path),
    SendStrategy("instance_prefixed_path", _instance_prefixed_path),
    SendStrategy("legacy_text_message", _legacy_text_message),
    SendStrategy("bearer_auth", _bearer_auth),
)


def clean_phone_number(number: str) -> str:
    """Strip everything but digits ("+55 (11) 9999-0000" → "551199990000")."""
    return re.sub(r"\D", "", number or "")


def _parse_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text}


def _message_id(payload: Any) -> str | None:
    if isinstance(payload, dict):
        key = payload.get("key")
        if isinstance(key, dict) and key.get("id"):
            return str(key["id"])
        if payload.get("messageId"):
            return str(payload["messageId"])
    return None


class EvolutionWhatsAppAdapter(ChannelAdapter):
    """Adapter for WhatsApp via a self-hosted Evolution API instance."""

    channel_name = "whatsapp"

    def __init__(
        self,
        base_url: str,
        api_token: str,
        instance_name: str = DEFAULT_INSTANCE,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        strategies: Sequence[SendStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.instance_name = instance_name or DEFAULT_INSTANCE
        self.timeout = timeout
        self.strategies = tuple(strategies)

    @classmethod
    def from_integration(
        cls, integration: Integration, timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    ) -> EvolutionWhatsAppAdapter:
        return cls(
            base_url=integration.base_url,
            api_token=integration.api_token,
            instance_name=integration.instance_name,
            timeout=timeout,
        )

    async def send(self, message: OutgoingMessage) -> DeliveryReceipt:
        """Send a text message, trying each strategy until one is accepted."""
        number = clean_phone_number(message.recipient)
        if not number:
            raise ConfigurationError("No WhatsApp recipient number configured")

        target = SendTarget(
            base_url=self.base_url,
            instance=self.instance_name,
            api_token=self.api_token,
            number=number,
            text=message.text,
        )

        attempts: list[_Attempt] = []
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for strategy in self.strategies:
                request = strategy.build(target)
                url = f"{self.base_url}{request.path}"
                try:
                    resp = await client.request(
                        request.method, url, headers=request.headers, json=request.json
                    )
                except httpx.HTTPError as exc:
                    logger.warning("WhatsApp %s transport error: %s", strategy.name, exc)
                    attempts.append(_Attempt(strategy.name, error=str(exc)))
                    continue

                payload = _parse_body(resp)
                if resp.is_success:
                    logger.info(
                        "WhatsApp message accepted for %s****** via %s",
                        number[:4],
                        strategy.name,
                    )
                    return DeliveryReceipt(
                        channel=self.channel_name,
                        status_code=resp.status_code,
                        response=payload,
                        strategy=strategy.name,
                        message_id=_message_id(payload),
                    )

                logger.debug("WhatsApp %s rejected with %d", strategy.name, resp.status_code)
                attempts.append(
                    _Attempt(strategy.name, status_code=resp.status_code, response=payload)
                )

        details = [vars(a) for a in attempts]
        if attempts and all(a.status_code is None for a in attempts):
            raise NetworkError(
                f"WhatsApp gateway unreachable: {attempts[-1].error}", details=details
            )
        last = next((a for a in reversed(attempts) if a.status_code is not None), None)
        status = last.status_code if last else None
        raise UpstreamAPIError(
            f"Falha ao enviar mensagem WhatsApp ({status}): {last.response if last else ''}",
            status_code=status,
            details=details,
        )

    async def connection_state(self) -> dict | None:
        """Return the instance connection state, or None if it cannot be read."""
        url = f"{self.base_url}/instance/connectionState/{self.instance_name}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(url, headers={"apikey": self.api_token})
        except httpx.HTTPError as exc:
            logger.debug("WhatsApp connectionState failed: %s", exc)
            return None
        if not resp.is_success:
            return None
        payload = _parse_body(resp)
        return payload if isinstance(payload, dict) else {"state": payload}
