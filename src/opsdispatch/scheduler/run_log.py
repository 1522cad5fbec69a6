"""Batch audit trail: one ``started`` and one terminal record per run."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from opsdispatch.store.logs import RunLogStore
from opsdispatch.store.models import CronRunLog, RunStatus

logger = logging.getLogger("opsdispatch.scheduler.run_log")


class ExecutionLogger:
    """Writes run-log records for one pipeline."""

    def __init__(self, store: RunLogStore, job_name: str) -> None:
        self._store = store
        self.job_name = job_name

    def _write(self, status: RunStatus, details: dict[str, Any]) -> CronRunLog:
        record = CronRunLog(job_name=self.job_name, status=status, details=details)
        self._store.append(record)
        logger.debug("Run log %s: %s", self.job_name, status)
        return record

    def started(self, flags: dict[str, Any]) -> CronRunLog:
        details = {"timestamp": datetime.now(UTC).isoformat(), **flags}
        return self._write(RunStatus.STARTED, details)

    def completed(
        self,
        *,
        executed: int,
        successful: int,
        failed: int,
        execution_time_ms: int,
        results: list[dict[str, Any]],
    ) -> CronRunLog:
        return self._write(
            RunStatus.COMPLETED,
            {
                "executed": executed,
                "successful": successful,
                "failed": failed,
                "execution_time_ms": execution_time_ms,
                "results": results,
            },
        )

    def critical(self, error: str, execution_time_ms: int) -> CronRunLog | None:
        """Record a batch-level failure. Never raises; the store may be the cause."""
        try:
            return self._write(
                RunStatus.CRITICAL_ERROR,
                {"error": error, "execution_time_ms": execution_time_ms},
            )
        except Exception:
            logger.exception("Could not record critical error for %s", self.job_name)
            return None
