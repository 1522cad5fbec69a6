"""Scheduled job stores: the due-job query and the post-attempt update."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Generic, TypeVar

from opsdispatch.store.base import JsonStore
from opsdispatch.store.models import ScheduledJob, ScheduledReport, ScheduledTicket

logger = logging.getLogger("opsdispatch.store.jobs")

JobT = TypeVar("JobT", bound=ScheduledJob)


class ScheduledJobStore(JsonStore[JobT], Generic[JobT]):
    """Scheduled jobs of one type, persisted as a JSON list."""

    def due(self, now: datetime) -> list[JobT]:
        """Return active jobs whose next_execution has passed, in storage order.

        Re-reads the file first so edits made by other processes are seen.
        Raises StoreError when the file cannot be read.
        """
        self.reload()
        return [
            job
            for job in self._records.values()
            if job.is_active and job.next_execution is not None and job.next_execution <= now
        ]

    def record_attempt(
        self,
        job_id: str,
        executed_at: datetime,
        next_execution: datetime | None,
    ) -> JobT | None:
        """Persist the outcome-independent bookkeeping of one attempt."""
        self.reload()
        job = self._records.get(job_id)
        if job is None:
            logger.warning("Job %s disappeared before its attempt was recorded", job_id)
            return None
        job.last_execution = executed_at
        job.next_execution = next_execution
        job.execution_count += 1
        job.updated_at = datetime.now(UTC)
        self.save()
        return job

    def find_active(self) -> list[JobT]:
        """Return all active jobs."""
        return [j for j in self._records.values() if j.is_active]


class TicketJobStore(ScheduledJobStore[ScheduledTicket]):
    model = ScheduledTicket


class ReportJobStore(ScheduledJobStore[ScheduledReport]):
    model = ScheduledReport
