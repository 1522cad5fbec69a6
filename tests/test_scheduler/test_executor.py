"""Tests for job execution and the job handlers."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from opsdispatch.channels.base import DeliveryReceipt
from opsdispatch.errors import NetworkError, UpstreamAPIError
from opsdispatch.scheduler.executor import (
    JobExecutor,
    Outcome,
    ReportJobHandler,
    TicketJobHandler,
    build_ticket_input,
)
from opsdispatch.store.models import (
    IntegrationKind,
    MessageTemplate,
    ScheduledReport,
    ScheduledTicket,
)
from opsdispatch.ticketing.glpi import CreatedTicket

NOW = datetime(2024, 6, 10, 11, 0, tzinfo=UTC)


@pytest.fixture
def ticket_job() -> ScheduledTicket:
    return ScheduledTicket(
        id="job1",
        owner_id="user-1",
        name="Weekly patching",
        cron_expression="0 8 * * 1",
        title="Apply patches",
        content="Patch all servers",
        urgency=4,
        entity_id=2,
        assign_group_id=5,
    )


@pytest.fixture
def report_job() -> ScheduledReport:
    return ScheduledReport(
        id="rep1",
        owner_id="user-1",
        name="Morning",
        cron_expression="0 8 * * *",
        phone_number="+55 11 99999-0000",
        report_type="tpl-1",
    )


class TestBuildTicketInput:
    def test_maps_fields_and_defaults(self, ticket_job):
        data = build_ticket_input(ticket_job)
        assert data == {
            "name": "Apply patches",
            "content": "Patch all servers",
            "urgency": 4,
            "impact": 3,
            "priority": 3,
            "type": 1,
            "entities_id": 2,
            "status": 1,
            "_groups_id_assign": 5,
        }


class TestJobExecutor:
    @pytest.mark.asyncio
    async def test_missing_credential_is_configuration_error(self, stores, ticket_job):
        handler = TicketJobHandler(client_factory=MagicMock())
        result = await JobExecutor(stores.integrations, handler).execute(ticket_job)

        assert result.success is False
        assert result.error_kind == "configuration"
        assert result.error == "Integração GLPI não configurada para o usuário user-1"
        handler._client_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_ticket_success(self, stores, glpi_integration, ticket_job):
        stores.integrations.add(glpi_integration)
        client = MagicMock()
        client.open_ticket = AsyncMock(return_value=CreatedTicket(id="321", response={"id": 321}))
        factory = MagicMock(return_value=client)

        result = await JobExecutor(stores.integrations, TicketJobHandler(factory)).execute(ticket_job)

        assert result.success is True
        assert result.external_id == "321"
        factory.assert_called_once_with(glpi_integration)
        client.open_ticket.assert_awaited_once_with(build_ticket_input(ticket_job))

    @pytest.mark.asyncio
    async def test_upstream_error_is_captured(self, stores, glpi_integration, ticket_job):
        stores.integrations.add(glpi_integration)
        client = MagicMock()
        client.open_ticket = AsyncMock(
            side_effect=UpstreamAPIError("GLPI API Error: 401 Unauthorized - x", status_code=401)
        )

        result = await JobExecutor(
            stores.integrations, TicketJobHandler(MagicMock(return_value=client))
        ).execute(ticket_job)

        assert result.success is False
        assert "401" in result.error
        assert result.error_kind == "upstream_api"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, stores, glpi_integration, ticket_job):
        stores.integrations.add(glpi_integration)
        handler = MagicMock()
        handler.kind = IntegrationKind.GLPI
        handler.perform = AsyncMock(side_effect=RuntimeError("boom"))

        result = await JobExecutor(stores.integrations, handler).execute(ticket_job)

        assert result.success is False
        assert result.error == "boom"
        assert result.error_kind == "unexpected"

    @pytest.mark.asyncio
    async def test_handler_outcome_passthrough(self, stores, glpi_integration, ticket_job):
        stores.integrations.add(glpi_integration)
        handler = MagicMock()
        handler.kind = IntegrationKind.GLPI
        handler.perform = AsyncMock(return_value=Outcome(external_id="x", response={"a": 1}))

        result = await JobExecutor(stores.integrations, handler).execute(ticket_job)

        assert result.success is True
        assert result.response == {"a": 1}


class TestReportJobHandler:
    def _handler(self, stores, adapter):
        return ReportJobHandler(
            stores.templates,
            stores.delivery_log,
            adapter_factory=MagicMock(return_value=adapter),
            timezone="America/Sao_Paulo",
            clock=lambda: NOW,
        )

    @pytest.mark.asyncio
    async def test_sends_rendered_template_and_logs_success(
        self, stores, evolution_integration, report_job
    ):
        stores.integrations.add(evolution_integration)
        stores.templates.add(MessageTemplate(id="tpl-1", name="Daily", body="Bom dia {{date}} {{time}}"))
        adapter = MagicMock()
        adapter.send = AsyncMock(
            return_value=DeliveryReceipt(channel="whatsapp", status_code=201, response={"ok": 1}, message_id="M1")
        )

        result = await JobExecutor(stores.integrations, self._handler(stores, adapter)).execute(report_job)

        assert result.success is True
        assert result.external_id == "M1"
        sent = adapter.send.call_args.args[0]
        assert sent.recipient == "5511999990000"
        assert sent.text == "Bom dia 10/06/2024 08:00:00"  # 11:00 UTC in São Paulo

        log = stores.delivery_log.recent()[0]
        assert log.status == "success"
        assert log.message_sent is True
        assert log.phone_number == "5511999990000"
        assert log.message_content == sent.text

    @pytest.mark.asyncio
    async def test_missing_template_fails_and_is_logged(self, stores, evolution_integration, report_job):
        stores.integrations.add(evolution_integration)
        adapter = MagicMock()
        adapter.send = AsyncMock()

        result = await JobExecutor(stores.integrations, self._handler(stores, adapter)).execute(report_job)

        assert result.success is False
        assert result.error_kind == "configuration"
        assert "tpl-1" in result.error
        adapter.send.assert_not_called()
        assert stores.delivery_log.recent()[0].status == "error"

    @pytest.mark.asyncio
    async def test_gateway_failure_logged(self, stores, evolution_integration, report_job):
        stores.integrations.add(evolution_integration)
        stores.templates.add(MessageTemplate(id="tpl-1", name="Daily", body="x" * 1500))
        adapter = MagicMock()
        adapter.send = AsyncMock(side_effect=NetworkError("WhatsApp gateway unreachable: down"))

        result = await JobExecutor(stores.integrations, self._handler(stores, adapter)).execute(report_job)

        assert result.success is False
        assert result.error_kind == "network"
        log = stores.delivery_log.recent()[0]
        assert log.status == "error"
        assert log.message_sent is False
        assert len(log.message_content) == 1000
        assert "unreachable" in log.error_details

    @pytest.mark.asyncio
    async def test_missing_gateway_credential(self, stores, glpi_integration, report_job):
        stores.integrations.add(glpi_integration)  # wrong kind
        result = await JobExecutor(
            stores.integrations, self._handler(stores, MagicMock())
        ).execute(report_job)

        assert result.success is False
        assert result.error == "Integração Evolution API não configurada para o usuário user-1"
