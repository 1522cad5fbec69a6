"""Job execution: one external side effect per scheduled job."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, Protocol, TypeVar
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from opsdispatch.channels.base import ChannelAdapter, OutgoingMessage
from opsdispatch.channels.whatsapp import EvolutionWhatsAppAdapter, clean_phone_number
from opsdispatch.config.constants import DEFAULT_HTTP_TIMEOUT_SECONDS, DEFAULT_TIMEZONE
from opsdispatch.errors import ConfigurationError, DispatchError, StoreError
from opsdispatch.reports.render import render_report_message
from opsdispatch.store.integrations import CredentialStore
from opsdispatch.store.logs import DeliveryLogStore
from opsdispatch.store.models import (
    Integration,
    IntegrationKind,
    ReportDeliveryLog,
    ScheduledJob,
    ScheduledReport,
    ScheduledTicket,
)
from opsdispatch.store.templates import TemplateStore
from opsdispatch.ticketing.glpi import DEFAULT_TICKET_STATUS, GLPIClient

logger = logging.getLogger("opsdispatch.scheduler.executor")

JobT = TypeVar("JobT", bound=ScheduledJob)
JobT_contra = TypeVar("JobT_contra", bound=ScheduledJob, contravariant=True)

MESSAGE_LOG_LIMIT = 1000


class ExecutionResult(BaseModel):
    """Outcome of one job attempt, as reported in the batch response."""

    job_id: str
    job_name: str
    success: bool
    external_id: str | None = None
    error: str | None = None
    error_kind: str | None = None
    next_execution: datetime | None = None
    response: Any = None


@dataclass
class Outcome:
    """What a handler produced when its side effect succeeded."""

    external_id: str | None = None
    response: Any = field(default=None, repr=False)


class JobHandler(Protocol[JobT_contra]):
    """Performs the side effect for one job type.

    ``perform`` raises a DispatchError subclass on failure.
    """

    kind: IntegrationKind

    async def perform(self, job: JobT_contra, credential: Integration) -> Outcome: ...


# -- GLPI tickets ---------------------------------------------------------------


def build_ticket_input(job: ScheduledTicket) -> dict[str, Any]:
    """Map a scheduled ticket onto GLPI's Ticket input fields."""
    ticket: dict[str, Any] = {
        "name": job.title,
        "content": job.content,
        "urgency": job.urgency,
        "impact": job.impact,
        "priority": job.priority,
        "type": job.type,
        "entities_id": job.entity_id,
        "status": DEFAULT_TICKET_STATUS,
    }
    optional = {
        "itilcategories_id": job.category_id,
        "_users_id_requester": job.requester_user_id,
        "_users_id_assign": job.assign_user_id,
        "_groups_id_assign": job.assign_group_id,
    }
    ticket.update({key: value for key, value in optional.items() if value is not None})
    return ticket


class TicketJobHandler:
    """Opens one GLPI ticket per scheduled ticket job."""

    kind = IntegrationKind.GLPI

    def __init__(
        self,
        client_factory: Callable[[Integration], GLPIClient] | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._client_factory = client_factory or (
            lambda integration: GLPIClient.from_integration(integration, timeout=timeout)
        )

    async def perform(self, job: ScheduledTicket, credential: Integration) -> Outcome:
        client = self._client_factory(credential)
        created = await client.open_ticket(build_ticket_input(job))
        logger.info("Ticket created for job %s (%s): id=%s", job.id, job.name, created.id)
        return Outcome(external_id=created.id, response=created.response)


# -- WhatsApp reports -----------------------------------------------------------


class ReportJobHandler:
    """Renders a report template and sends it over WhatsApp.

    Every attempt that reaches the rendering step is written to the
    delivery log, whether it succeeds or fails.
    """

    kind = IntegrationKind.EVOLUTION_API

    def __init__(
        self,
        templates: TemplateStore,
        delivery_log: DeliveryLogStore,
        adapter_factory: Callable[[Integration], ChannelAdapter] | None = None,
        timezone: str = DEFAULT_TIMEZONE,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._templates = templates
        self._delivery_log = delivery_log
        self._adapter_factory = adapter_factory or (
            lambda integration: EvolutionWhatsAppAdapter.from_integration(integration, timeout=timeout)
        )
        self._tz = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(UTC))

    async def perform(self, job: ScheduledReport, credential: Integration) -> Outcome:
        started = time.monotonic()
        phone = clean_phone_number(job.phone_number)
        message: str | None = None
        try:
            template = self._templates.active(job.report_type)
            if template is None:
                raise ConfigurationError(f"Template não encontrado ou inativo: {job.report_type}")
            message = render_report_message(template, job, self._clock().astimezone(self._tz))

            adapter = self._adapter_factory(credential)
            receipt = await adapter.send(OutgoingMessage(text=message, recipient=phone))
        except DispatchError as exc:
            self._record(job, phone, message, started, error=exc.message, response=exc.details)
            raise

        self._record(job, phone, message, started, response=receipt.response)
        logger.info("Report %s (%s) sent to %s", job.id, job.name, phone)
        return Outcome(external_id=receipt.message_id, response=receipt.response)

    def _record(
        self,
        job: ScheduledReport,
        phone: str,
        message: str | None,
        started: float,
        error: str | None = None,
        response: Any = None,
    ) -> None:
        entry = ReportDeliveryLog(
            report_id=job.id,
            owner_id=job.owner_id,
            phone_number=phone,
            status="error" if error else "success",
            message_sent=error is None,
            message_content=message[:MESSAGE_LOG_LIMIT] if message else None,
            error_details=error,
            execution_time_ms=int((time.monotonic() - started) * 1000),
            gateway_response=response,
        )
        try:
            self._delivery_log.append(entry)
        except StoreError as exc:
            logger.warning("Could not write delivery log for report %s: %s", job.id, exc)


# -- Executor -------------------------------------------------------------------


class JobExecutor(Generic[JobT]):
    """Resolves credentials and runs one handler, never raising.

    Every failure is contained in the returned ExecutionResult so the
    batch can move on to the next job.
    """

    def __init__(self, credentials: CredentialStore, handler: JobHandler[JobT]) -> None:
        self._credentials = credentials
        self._handler = handler

    async def execute(self, job: JobT) -> ExecutionResult:
        kind = self._handler.kind
        try:
            credential = self._credentials.get_credential(job.owner_id, kind)
            if credential is None:
                raise ConfigurationError(
                    f"Integração {kind.label} não configurada para o usuário {job.owner_id}"
                )
            outcome = await self._handler.perform(job, credential)
        except DispatchError as exc:
            logger.warning("Job %s (%s) failed [%s]: %s", job.id, job.name, exc.kind, exc.message)
            return ExecutionResult(
                job_id=job.id,
                job_name=job.name,
                success=False,
                error=exc.message,
                error_kind=exc.kind,
                response=exc.details,
            )
        except Exception as exc:
            logger.exception("Unexpected error executing job %s (%s)", job.id, job.name)
            return ExecutionResult(
                job_id=job.id,
                job_name=job.name,
                success=False,
                error=str(exc) or type(exc).__name__,
                error_kind="unexpected",
            )

        return ExecutionResult(
            job_id=job.id,
            job_name=job.name,
            success=True,
            external_id=outcome.external_id,
            response=outcome.response,
        )
