"""Tests for the HTTP surface: health, batch triggers, and the Zabbix webhook."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from opsdispatch.server.app import create_app
from opsdispatch.store.models import ScheduledTicket, SubscriptionActions, WebhookSubscription


def _resp(status: int, payload=None) -> httpx.Response:
    return httpx.Response(
        status,
        json=payload if payload is not None else {},
        request=httpx.Request("POST", "https://glpi.example.com/apirest.php"),
    )


@pytest.fixture
def app(test_settings):
    return create_app(test_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def app_stores(app):
    return app.state.stores


class TestHealth:
    def test_health_returns_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert "version" in data
        assert data["uptime_seconds"] >= 0

    def test_status_reports_pipelines(self, client, app_stores):
        app_stores.tickets.add(
            ScheduledTicket(
                owner_id="user-1",
                name="x",
                cron_expression="0 8 * * *",
                title="t",
                content="c",
                next_execution=datetime.now(UTC) - timedelta(minutes=1),
            )
        )
        data = client.get("/status").json()
        assert data["scheduler_enabled"] is False
        assert data["scheduler_running"] is False
        assert data["timezone"] == "America/Sao_Paulo"
        tickets = data["pipelines"][0]
        assert tickets["name"] == "glpi-scheduled-tickets"
        assert tickets["active_jobs"] == 1
        assert tickets["due_now"] == 1


class TestBatchEndpoints:
    def test_empty_ticket_batch(self, client):
        resp = client.post("/jobs/glpi-tickets/run", json={"debug": True})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["executed_tickets"] == 0
        assert data["results"] == []

    def test_empty_report_batch(self, client):
        data = client.post("/jobs/scheduled-reports/run").json()
        assert data["executed_reports"] == 0

    def test_invalid_json_body_is_ignored(self, client):
        resp = client.post(
            "/jobs/glpi-tickets/run",
            content=b"{nope",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 200

    def test_store_failure_returns_500(self, client, app_stores):
        app_stores.tickets.path.parent.mkdir(parents=True, exist_ok=True)
        app_stores.tickets.path.write_text("garbage", encoding="utf-8")

        resp = client.post("/jobs/glpi-tickets/run")

        assert resp.status_code == 500
        data = resp.json()
        assert data["success"] is False
        assert "error" in data

    def test_upstream_401_still_returns_200(self, client, app_stores, glpi_integration):
        app_stores.integrations.add(glpi_integration)
        app_stores.tickets.add(
            ScheduledTicket(
                id="job1",
                owner_id="user-1",
                name="Daily check",
                cron_expression="0 8 * * *",
                title="t",
                content="c",
                next_execution=datetime.now(UTC) - timedelta(days=1),
            )
        )

        with patch("opsdispatch.ticketing.glpi.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
            mock_client.post = AsyncMock(
                side_effect=[
                    _resp(200, {"session_token": "s"}),
                    _resp(401, ["ERROR"]),
                    _resp(200),
                ]
            )

            resp = client.post("/jobs/glpi-tickets/run")

        assert resp.status_code == 200
        data = resp.json()
        assert data["failed"] == 1
        assert "401" in data["results"][0]["error"]
        assert app_stores.tickets.get("job1").execution_count == 1

    def test_recent_runs(self, client):
        client.post("/jobs/glpi-tickets/run")
        runs = client.get("/jobs/runs", params={"limit": 5}).json()
        assert [r["status"] for r in runs] == ["completed", "started"]
        assert runs[0]["job_name"] == "glpi-scheduled-tickets"


class TestZabbixWebhook:
    def test_empty_body_uses_placeholder(self, client):
        resp = client.post("/webhooks/zabbix", content=b"")
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["trigger_type"] == "problem_created"
        assert data["processed_webhooks"] == 0

    def test_malformed_body_returns_400(self, client):
        resp = client.post("/webhooks/zabbix", content=b"<xml/>")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid JSON format in request body"

    def test_store_failure_returns_500(self, client, app_stores):
        app_stores.subscriptions.path.parent.mkdir(parents=True, exist_ok=True)
        app_stores.subscriptions.path.write_text("[", encoding="utf-8")

        resp = client.post("/webhooks/zabbix", json={"status": "1"})

        assert resp.status_code == 500

    def test_subscription_without_credentials_reports_action_errors(self, client, app_stores):
        app_stores.subscriptions.add(
            WebhookSubscription(
                owner_id="user-9",
                name="ops",
                trigger_type="problem_resolved",
                actions=SubscriptionActions(create_ticket=True),
            )
        )

        resp = client.post("/webhooks/zabbix", json={"subject": "Up again", "status": "0"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["trigger_type"] == "problem_resolved"
        assert data["processed_webhooks"] == 1
        action = data["results"][0]["actions"][0]
        assert action["type"] == "glpi_ticket"
        assert action["success"] is False
        assert app_stores.subscriptions.get(data["results"][0]["webhook_id"]).trigger_count == 1
