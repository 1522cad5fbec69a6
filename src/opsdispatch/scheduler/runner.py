"""Batch runner: scan due jobs, then execute and advance each one.

One call to ``BatchRunner.run`` is one pipeline invocation. Jobs are
processed strictly in sequence. There is no claim or lock on a job, so two
overlapping runs can both attempt the same due job (at-least-once).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from opsdispatch.config.constants import DEFAULT_TIMEZONE
from opsdispatch.errors import ScheduleError, StoreError
from opsdispatch.scheduler.cron import next_execution
from opsdispatch.scheduler.executor import ExecutionResult, JobExecutor
from opsdispatch.scheduler.run_log import ExecutionLogger
from opsdispatch.store.jobs import ScheduledJobStore
from opsdispatch.store.models import ScheduledJob

logger = logging.getLogger("opsdispatch.scheduler.runner")

JobT = TypeVar("JobT", bound=ScheduledJob)


@dataclass
class BatchTrigger:
    """How a run was started. Affects logging only."""

    debug: bool = False
    cron_execution: bool = False
    manual_test: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> BatchTrigger:
        """Build from a request body. Only JSON ``true`` sets a flag."""
        if not isinstance(payload, dict):
            return cls()
        return cls(
            debug=payload.get("debug") is True,
            cron_execution=payload.get("cron_execution") is True,
            manual_test=payload.get("manual_test") is True,
        )


@dataclass
class BatchReport:
    """Summary of one run, shaped for the HTTP response."""

    success: bool
    noun: str  # "tickets" | "reports"
    execution_time_ms: int
    timestamp: datetime
    results: list[ExecutionResult] = field(default_factory=list)
    error: str | None = None

    @property
    def executed(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.executed - self.successful

    @property
    def status_code(self) -> int:
        return 200 if self.success else 500

    @property
    def message(self) -> str:
        if not self.success:
            return f"Critical error while processing scheduled {self.noun}"
        return (
            f"Processed {self.executed} scheduled {self.noun}: "
            f"{self.successful} successful, {self.failed} failed"
        )

    def as_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": self.success,
            "execution_time_ms": self.execution_time_ms,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
        }
        if not self.success:
            body["error"] = self.error
            return body
        body.update(
            {
                f"executed_{self.noun}": self.executed,
                "successful": self.successful,
                "failed": self.failed,
                "results": [r.model_dump(mode="json") for r in self.results],
            }
        )
        return body


class ScheduleAdvancer(Generic[JobT]):
    """Moves a job's schedule forward after an attempt, whatever its outcome."""

    def __init__(self, store: ScheduledJobStore[JobT], timezone: str = DEFAULT_TIMEZONE) -> None:
        self._store = store
        self._tz = timezone

    def advance(self, job: JobT, at: datetime) -> datetime | None:
        try:
            nxt = next_execution(job.cron_expression, at, self._tz)
        except ScheduleError as exc:
            logger.warning("Job %s (%s) left unscheduled: %s", job.id, job.name, exc.message)
            nxt = None
        try:
            self._store.record_attempt(job.id, at, nxt)
        except StoreError as exc:
            logger.error("Job %s (%s) attempt not recorded: %s", job.id, job.name, exc.message)
        return nxt


class BatchRunner(Generic[JobT]):
    """Runs one pipeline: every due job, in storage order."""

    def __init__(
        self,
        *,
        noun: str,
        store: ScheduledJobStore[JobT],
        executor: JobExecutor[JobT],
        advancer: ScheduleAdvancer[JobT],
        run_logger: ExecutionLogger,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.noun = noun
        self._store = store
        self._executor = executor
        self._advancer = advancer
        self._run_logger = run_logger
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def name(self) -> str:
        return self._run_logger.job_name

    async def run(self, trigger: BatchTrigger | None = None) -> BatchReport:
        trigger = trigger or BatchTrigger()
        started = time.monotonic()
        results: list[ExecutionResult] = []

        def elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            self._run_logger.started(asdict(trigger))
            now = self._clock()
            due = self._store.due(now)
            if trigger.debug:
                logger.info("[%s] %d due job(s) at %s", self.name, len(due), now.isoformat())
            else:
                logger.debug("[%s] %d due job(s)", self.name, len(due))

            for job in due:
                result = await self._executor.execute(job)
                result.next_execution = self._advancer.advance(job, now)
                results.append(result)

            duration = elapsed()
            report = BatchReport(
                success=True,
                noun=self.noun,
                execution_time_ms=duration,
                timestamp=self._clock(),
                results=results,
            )
            self._run_logger.completed(
                executed=report.executed,
                successful=report.successful,
                failed=report.failed,
                execution_time_ms=duration,
                results=[r.model_dump(mode="json") for r in results],
            )
        except Exception as exc:
            duration = elapsed()
            logger.exception("[%s] batch aborted", self.name)
            self._run_logger.critical(str(exc), duration)
            return BatchReport(
                success=False,
                noun=self.noun,
                execution_time_ms=duration,
                timestamp=self._clock(),
                results=results,
                error=str(exc),
            )

        logger.info("[%s] %s", self.name, report.message)
        return report
