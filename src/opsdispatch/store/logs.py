"""Append-only audit stores: batch run log and report delivery log."""

from __future__ import annotations

from pathlib import Path

from opsdispatch.config.constants import DEFAULT_RUN_LOG_RETENTION
from opsdispatch.store.base import JsonStore, RecordT
from opsdispatch.store.models import CronRunLog, ReportDeliveryLog


class _AppendOnlyStore(JsonStore[RecordT]):
    """Keeps at most ``retention`` records, dropping the oldest first."""

    def __init__(self, path: Path, retention: int = DEFAULT_RUN_LOG_RETENTION) -> None:
        self._retention = retention
        super().__init__(path)

    def append(self, record: RecordT) -> RecordT:
        self.reload()
        self._records[record.id] = record
        overflow = len(self._records) - self._retention
        if overflow > 0:
            for key in list(self._records)[:overflow]:
                del self._records[key]
        self.save()
        return record

    def recent(self, limit: int = 50) -> list[RecordT]:
        """Newest first."""
        self.load()
        return list(reversed(self.all()))[:limit]


class RunLogStore(_AppendOnlyStore[CronRunLog]):
    model = CronRunLog

    def for_job(self, job_name: str, limit: int = 50) -> list[CronRunLog]:
        return [r for r in self.recent(limit=self._retention) if r.job_name == job_name][:limit]


class DeliveryLogStore(_AppendOnlyStore[ReportDeliveryLog]):
    model = ReportDeliveryLog
