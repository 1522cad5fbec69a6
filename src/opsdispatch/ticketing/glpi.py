"""GLPI REST client: session-scoped ticket creation."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx

from opsdispatch.config.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from opsdispatch.errors import NetworkError, UpstreamAPIError, UpstreamAuthError
from opsdispatch.store.models import Integration

logger = logging.getLogger("opsdispatch.ticketing.glpi")

API_PATH = "/apirest.php"

# Default GLPI ticket status: 1 = New
DEFAULT_TICKET_STATUS = 1


@dataclass
class CreatedTicket:
    """Result of a successful Ticket POST."""

    id: str | None
    response: Any = field(default=None, repr=False)


def api_root(base_url: str) -> str:
    """Normalize an integration base URL to the REST root (…/apirest.php)."""
    root = base_url.rstrip("/")
    if not root.endswith(API_PATH):
        root = f"{root}{API_PATH}"
    return root


def extract_ticket_id(payload: Any) -> str | None:
    """GLPI answers ``{"id": N}`` for one input and ``[{"id": N}]`` for a list."""
    if isinstance(payload, list):
        payload = payload[0] if payload else None
    if isinstance(payload, dict) and payload.get("id") is not None:
        return str(payload["id"])
    return None


class GLPISession:
    """An authenticated session; only valid inside ``GLPIClient.session()``."""

    def __init__(self, client: GLPIClient, http: httpx.AsyncClient, token: str) -> None:
        self._client = client
        self._http = http
        self.token = token

    async def create_ticket(self, ticket_input: dict[str, Any]) -> CreatedTicket:
        """POST /Ticket with ``{"input": ticket_input}``."""
        url = f"{self._client.root}/Ticket"
        try:
            resp = await self._http.post(
                url,
                headers=self._client.session_headers(self.token),
                json={"input": ticket_input},
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"GLPI request failed: {exc}") from exc

        body = resp.text
        logger.debug("GLPI Ticket response (status %d): %s", resp.status_code, body[:500])
        if not resp.is_success:
            raise UpstreamAPIError(
                f"GLPI API Error: {resp.status_code} {resp.reason_phrase} - {body[:500]}",
                status_code=resp.status_code,
                details=body,
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamAPIError(
                f"Unreadable GLPI response: {exc}",
                status_code=resp.status_code,
                details=body,
            ) from exc
        return CreatedTicket(id=extract_ticket_id(payload), response=payload)


class GLPIClient:
    """Talks to one GLPI instance with an app token and a user token."""

    def __init__(
        self,
        base_url: str,
        app_token: str,
        user_token: str,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.root = api_root(base_url)
        self.app_token = app_token
        self.user_token = user_token
        self.timeout = timeout

    @classmethod
    def from_integration(
        cls, integration: Integration, timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    ) -> GLPIClient:
        return cls(
            base_url=integration.base_url,
            app_token=integration.api_token,
            user_token=integration.user_token,
            timeout=timeout,
        )

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------

    def login_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "App-Token": self.app_token,
            "Authorization": f"user_token {self.user_token}",
        }

    def session_headers(self, token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "App-Token": self.app_token,
            "Session-Token": token,
        }

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def _init_session(self, http: httpx.AsyncClient) -> str:
        try:
            resp = await http.post(f"{self.root}/initSession", headers=self.login_headers())
        except httpx.HTTPError as exc:
            raise NetworkError(f"GLPI initSession failed: {exc}") from exc

        if not resp.is_success:
            raise UpstreamAuthError(
                f"GLPI login rejected: {resp.status_code} - {resp.text[:300]}",
                status_code=resp.status_code,
                details=resp.text,
            )
        try:
            token = resp.json().get("session_token")
        except (ValueError, AttributeError):
            token = None
        if not token:
            raise UpstreamAuthError(
                "GLPI login returned no session_token",
                status_code=resp.status_code,
                details=resp.text,
            )
        return token

    async def _kill_session(self, http: httpx.AsyncClient, token: str) -> None:
        """Best-effort logout; the session expires on its own anyway."""
        try:
            resp = await http.post(f"{self.root}/killSession", headers=self.session_headers(token))
            if not resp.is_success:
                logger.warning("GLPI killSession returned %d", resp.status_code)
        except httpx.HTTPError as exc:
            logger.warning("GLPI killSession failed: %s", exc)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[GLPISession]:
        """Login, yield the session, then logout whatever happened inside."""
        async with httpx.AsyncClient(timeout=self.timeout) as http:
            token = await self._init_session(http)
            try:
                yield GLPISession(self, http, token)
            finally:
                await self._kill_session(http, token)

    async def open_ticket(self, ticket_input: dict[str, Any]) -> CreatedTicket:
        """Create one ticket inside its own session."""
        async with self.session() as session:
            return await session.create_ticket(ticket_input)
