"""Pydantic models for persisted records."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from opsdispatch.config.constants import TRIGGER_PROBLEM_CREATED


def _generate_id() -> str:
    return secrets.token_hex(6)


def _now() -> datetime:
    return datetime.now(UTC)


class IntegrationKind(StrEnum):
    """External systems a credential set can point at."""

    GLPI = "glpi"
    EVOLUTION_API = "evolution_api"

    @property
    def label(self) -> str:
        return {"glpi": "GLPI", "evolution_api": "Evolution API"}[self.value]


# -- Scheduled jobs -------------------------------------------------------------


class ScheduledJob(BaseModel):
    """Fields shared by every scheduled job type."""

    id: str = Field(default_factory=_generate_id)
    owner_id: str
    name: str
    cron_expression: str  # 5-field cron (e.g. "0 8 * * 1-5")
    is_active: bool = True
    next_execution: datetime | None = None
    last_execution: datetime | None = None
    execution_count: int = 0  # attempts, not successes
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class ScheduledTicket(ScheduledJob):
    """A GLPI ticket opened on a schedule."""

    title: str
    content: str
    urgency: int = 3
    impact: int = 3
    priority: int = 3
    type: int = 1  # 1 = incident, 2 = request
    entity_id: int = 0
    category_id: int | None = None
    requester_user_id: int | None = None
    assign_user_id: int | None = None
    assign_group_id: int | None = None


class ReportSettings(BaseModel):
    """Per-report flags; unknown keys are kept for templates."""

    model_config = ConfigDict(extra="allow")

    include_details: bool = True
    custom_text: str = ""


class ScheduledReport(ScheduledJob):
    """A WhatsApp report message sent on a schedule."""

    phone_number: str
    report_type: str  # MessageTemplate id
    settings: ReportSettings = Field(default_factory=ReportSettings)


# -- Credentials ----------------------------------------------------------------


class Integration(BaseModel):
    """Credentials for one external system, owned by one tenant."""

    id: str = Field(default_factory=_generate_id)
    owner_id: str
    kind: IntegrationKind
    name: str = ""
    base_url: str
    api_token: str = Field(default="", repr=False)
    user_token: str = Field(default="", repr=False)
    instance_name: str = ""
    phone_number: str = ""
    is_active: bool = True


# -- Webhooks -------------------------------------------------------------------


class SubscriptionActions(BaseModel):
    """Which side effects a webhook subscription performs.

    Accepts the dashboard's original column names as aliases.
    """

    model_config = ConfigDict(populate_by_name=True)

    create_ticket: bool = Field(
        default=False, validation_alias=AliasChoices("create_ticket", "create_glpi_ticket")
    )
    ticket_entity_id: int = Field(
        default=0, validation_alias=AliasChoices("ticket_entity_id", "glpi_entity_id")
    )
    send_message: bool = Field(
        default=False, validation_alias=AliasChoices("send_message", "send_whatsapp")
    )
    message_target: str = Field(
        default="", validation_alias=AliasChoices("message_target", "whatsapp_number")
    )
    custom_message_template: str = Field(
        default="", validation_alias=AliasChoices("custom_message_template", "custom_message")
    )


class WebhookSubscription(BaseModel):
    """A registered reaction to inbound monitoring alerts."""

    id: str = Field(default_factory=_generate_id)
    owner_id: str
    name: str
    trigger_type: str = TRIGGER_PROBLEM_CREATED
    is_active: bool = True
    actions: SubscriptionActions = Field(default_factory=SubscriptionActions)
    trigger_count: int = 0
    last_triggered: datetime | None = None
    created_at: datetime = Field(default_factory=_now)


# -- Templates ------------------------------------------------------------------


class MessageTemplate(BaseModel):
    """WhatsApp message body referenced by ScheduledReport.report_type."""

    id: str = Field(default_factory=_generate_id)
    name: str
    template_type: str = "custom"
    body: str
    is_active: bool = True


# -- Logs -----------------------------------------------------------------------


class RunStatus(StrEnum):
    STARTED = "started"
    COMPLETED = "completed"
    ERROR = "error"
    CRITICAL_ERROR = "critical_error"


class CronRunLog(BaseModel):
    """One audit record for a batch run."""

    id: str = Field(default_factory=_generate_id)
    job_name: str  # pipeline id, not the individual job
    status: RunStatus
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_now)


class ReportDeliveryLog(BaseModel):
    """Outcome of one attempt to deliver a scheduled report."""

    id: str = Field(default_factory=_generate_id)
    report_id: str
    owner_id: str
    phone_number: str
    status: str  # "success" | "error"
    message_sent: bool = False
    message_content: str | None = None
    error_details: str | None = None
    execution_time_ms: int | None = None
    gateway_response: Any = None
    created_at: datetime = Field(default_factory=_now)
