"""Build the pipelines and stores from Settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from opsdispatch.config.constants import (
    DELIVERY_LOG_FILENAME,
    INTEGRATIONS_FILENAME,
    REPORTS_FILENAME,
    REPORTS_PIPELINE,
    RUN_LOG_FILENAME,
    TEMPLATES_FILENAME,
    TICKETS_FILENAME,
    TICKETS_PIPELINE,
    WEBHOOKS_FILENAME,
)
from opsdispatch.scheduler.executor import JobExecutor, ReportJobHandler, TicketJobHandler
from opsdispatch.scheduler.run_log import ExecutionLogger
from opsdispatch.scheduler.runner import BatchRunner, ScheduleAdvancer
from opsdispatch.store import (
    DeliveryLogStore,
    IntegrationStore,
    ReportJobStore,
    RunLogStore,
    SubscriptionStore,
    TemplateStore,
    TicketJobStore,
)
from opsdispatch.store.models import ScheduledReport, ScheduledTicket
from opsdispatch.webhooks.dispatcher import WebhookDispatcher

if TYPE_CHECKING:
    from opsdispatch.config.settings import Settings


@dataclass
class Stores:
    """Every JSON store, rooted at one data directory."""

    tickets: TicketJobStore
    reports: ReportJobStore
    integrations: IntegrationStore
    subscriptions: SubscriptionStore
    templates: TemplateStore
    run_log: RunLogStore
    delivery_log: DeliveryLogStore


def create_stores(settings: Settings) -> Stores:
    data_dir = settings.data_dir
    retention = settings.storage.run_log_retention
    return Stores(
        tickets=TicketJobStore(data_dir / TICKETS_FILENAME),
        reports=ReportJobStore(data_dir / REPORTS_FILENAME),
        integrations=IntegrationStore(data_dir / INTEGRATIONS_FILENAME),
        subscriptions=SubscriptionStore(data_dir / WEBHOOKS_FILENAME),
        templates=TemplateStore(data_dir / TEMPLATES_FILENAME),
        run_log=RunLogStore(data_dir / RUN_LOG_FILENAME, retention=retention),
        delivery_log=DeliveryLogStore(data_dir / DELIVERY_LOG_FILENAME, retention=retention),
    )


def create_ticket_runner(settings: Settings, stores: Stores) -> BatchRunner[ScheduledTicket]:
    tz = settings.scheduler.timezone
    return BatchRunner(
        noun="tickets",
        store=stores.tickets,
        executor=JobExecutor(
            stores.integrations,
            TicketJobHandler(timeout=settings.http.timeout_seconds),
        ),
        advancer=ScheduleAdvancer(stores.tickets, tz),
        run_logger=ExecutionLogger(stores.run_log, TICKETS_PIPELINE),
    )


def create_report_runner(settings: Settings, stores: Stores) -> BatchRunner[ScheduledReport]:
    tz = settings.scheduler.timezone
    handler = ReportJobHandler(
        stores.templates,
        stores.delivery_log,
        timezone=tz,
        timeout=settings.http.timeout_seconds,
    )
    return BatchRunner(
        noun="reports",
        store=stores.reports,
        executor=JobExecutor(stores.integrations, handler),
        advancer=ScheduleAdvancer(stores.reports, tz),
        run_logger=ExecutionLogger(stores.run_log, REPORTS_PIPELINE),
    )


def create_dispatcher(settings: Settings, stores: Stores) -> WebhookDispatcher:
    return WebhookDispatcher(
        stores.subscriptions,
        stores.integrations,
        timezone=settings.scheduler.timezone,
        timeout=settings.http.timeout_seconds,
    )
