"""Persistence: JSON-file stores for jobs, credentials, webhooks, and logs."""

from opsdispatch.store.integrations import CredentialStore, IntegrationStore
from opsdispatch.store.jobs import ReportJobStore, ScheduledJobStore, TicketJobStore
from opsdispatch.store.logs import DeliveryLogStore, RunLogStore
from opsdispatch.store.subscriptions import SubscriptionStore
from opsdispatch.store.templates import TemplateStore

__all__ = [
    "CredentialStore",
    "DeliveryLogStore",
    "IntegrationStore",
    "ReportJobStore",
    "RunLogStore",
    "ScheduledJobStore",
    "SubscriptionStore",
    "TemplateStore",
    "TicketJobStore",
]
