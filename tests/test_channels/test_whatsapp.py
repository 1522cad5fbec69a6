"""Tests for the Evolution API WhatsApp adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from opsdispatch.channels.base import OutgoingMessage
from opsdispatch.channels.whatsapp import (
    DEFAULT_STRATEGIES,
    EvolutionWhatsAppAdapter,
    SendTarget,
    clean_phone_number,
)
from opsdispatch.errors import ConfigurationError, NetworkError, UpstreamAPIError


def _resp(status: int, payload=None, method: str = "POST") -> httpx.Response:
    return httpx.Response(
        status,
        json=payload if payload is not None else {},
        request=httpx.Request(method, "https://evo.example.com"),
    )


@pytest.fixture
def adapter() -> EvolutionWhatsAppAdapter:
    return EvolutionWhatsAppAdapter(
        base_url="https://evo.example.com/",
        api_token="evo-key",
        instance_name="ops",
    )


@pytest.fixture
def message() -> OutgoingMessage:
    return OutgoingMessage(text="Relatório diário", recipient="+55 (11) 99999-0000")


class TestInit:
    def test_channel_name(self, adapter):
        assert adapter.channel_name == "whatsapp"

    def test_stores_config(self, adapter):
        assert adapter.base_url == "https://evo.example.com"
        assert adapter.instance_name == "ops"

    def test_default_instance(self):
        assert EvolutionWhatsAppAdapter("https://x", "k", "").instance_name == "main_instance"


class TestStrategies:
    def test_order_and_shapes(self):
        target = SendTarget("https://x", "ops", "key", "5511", "hi")
        built = [s.build(target) for s in DEFAULT_STRATEGIES]

        assert built[0].path == "/message/sendText/ops"
        assert built[0].headers["apikey"] == "key"
        assert built[0].json == {"number": "5511", "text": "hi"}
        assert built[1].path == "/ops/message/sendText"
        assert built[2].json["textMessage"] == {"text": "hi"}
        assert built[3].headers["Authorization"] == "Bearer key"
        assert "apikey" not in built[3].headers

    def test_clean_phone_number(self):
        assert clean_phone_number("+55 (11) 99999-0000") == "5511999990000"
        assert clean_phone_number("") == ""


class TestSend:
    @pytest.mark.asyncio
    async def test_first_strategy_wins(self, adapter, message):
        with patch("opsdispatch.channels.whatsapp.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
            mock_client.request = AsyncMock(return_value=_resp(201, {"key": {"id": "MSG1"}}))

            receipt = await adapter.send(message)

        assert receipt.strategy == "v2_path"
        assert receipt.message_id == "MSG1"
        mock_client.request.assert_called_once()
        call = mock_client.request.call_args
        assert call.args == ("POST", "https://evo.example.com/message/sendText/ops")
        assert call.kwargs["json"] == {"number": "5511999990000", "text": "Relatório diário"}

    @pytest.mark.asyncio
    async def test_falls_back_until_accepted(self, adapter, message):
        with patch("opsdispatch.channels.whatsapp.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
            mock_client.request = AsyncMock(
                side_effect=[_resp(404), httpx.ConnectError("reset"), _resp(200, {"ok": True})]
            )

            receipt = await adapter.send(message)

        assert receipt.strategy == "legacy_text_message"
        assert mock_client.request.call_count == 3

    @pytest.mark.asyncio
    async def test_all_rejected_raises_api_error(self, adapter, message):
        with patch("opsdispatch.channels.whatsapp.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
            mock_client.request = AsyncMock(return_value=_resp(401, {"error": "Unauthorized"}))

            with pytest.raises(UpstreamAPIError) as exc_info:
                await adapter.send(message)

        assert exc_info.value.status_code == 401
        assert len(exc_info.value.details) == len(DEFAULT_STRATEGIES)

    @pytest.mark.asyncio
    async def test_all_transport_failures_raise_network_error(self, adapter, message):
        with patch("opsdispatch.channels.whatsapp.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
            mock_client.request = AsyncMock(side_effect=httpx.ConnectTimeout("timeout"))

            with pytest.raises(NetworkError):
                await adapter.send(message)

    @pytest.mark.asyncio
    async def test_empty_recipient(self, adapter):
        with pytest.raises(ConfigurationError):
            await adapter.send(OutgoingMessage(text="x", recipient="n/a"))


class TestConnectionState:
    @pytest.mark.asyncio
    async def test_returns_state(self, adapter):
        with patch("opsdispatch.channels.whatsapp.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
            mock_client.get = AsyncMock(
                return_value=_resp(200, {"instance": {"state": "open"}}, method="GET")
            )

            state = await adapter.connection_state()

        assert state == {"instance": {"state": "open"}}
        assert mock_client.get.call_args.args[0] == (
            "https://evo.example.com/instance/connectionState/ops"
        )

    @pytest.mark.asyncio
    async def test_unreachable_returns_none(self, adapter):
        with patch("opsdispatch.channels.whatsapp.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
            mock_client.get = AsyncMock(side_effect=httpx.ConnectError("down"))

            assert await adapter.connection_state() is None
