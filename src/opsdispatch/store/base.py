"""JSON file persistence shared by every store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from opsdispatch.errors import StoreError

logger = logging.getLogger("opsdispatch.store")

RecordT = TypeVar("RecordT", bound=BaseModel)


class JsonStore(Generic[RecordT]):
    """Load/save records of one model type from a JSON file.

    Uses atomic writes (write to .tmp, then replace) to prevent corruption.
    Records are keyed by their ``id`` attribute and kept in file order.
    Every mutation re-reads the file before writing, so changes saved by
    another process since the last read are kept. A corrupt file makes
    mutations raise StoreError instead of overwriting it.
    """

    model: type[RecordT]

    def __init__(self, path: Path) -> None:
        self._path = path
        self._records: dict[str, RecordT] = {}
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # -- Persistence -----------------------------------------------------------

    def load(self) -> None:
        """Load records from disk. Silently starts empty if file is missing or unreadable."""
        try:
            self.reload()
        except StoreError as exc:
            logger.warning("Failed to load %s: %s", self._path.name, exc)

    def reload(self) -> None:
        """Load records from disk, raising StoreError if the file is unreadable."""
        self._records.clear()
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            for raw in data:
                record = self.model.model_validate(raw)
                self._records[record.id] = record
        except (json.JSONDecodeError, OSError, TypeError, ValidationError) as exc:
            self._records.clear()
            raise StoreError(f"Cannot read {self._path}: {exc}") from exc
        logger.debug("Loaded %d records from %s", len(self._records), self._path)

    def save(self) -> None:
        """Persist all records to disk atomically."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            data = [record.model_dump(mode="json") for record in self._records.values()]
            tmp.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as exc:
            raise StoreError(f"Cannot write {self._path}: {exc}") from exc

    # -- CRUD ------------------------------------------------------------------

    def add(self, record: RecordT) -> RecordT:
        """Add a record and persist."""
        self.reload()
        self._records[record.id] = record
        self.save()
        return record

    def get(self, record_id: str) -> RecordT | None:
        """Retrieve a record by ID."""
        return self._records.get(record_id)

    def update(self, record: RecordT) -> RecordT:
        """Update an existing record and persist."""
        self.reload()
        self._records[record.id] = record
        self.save()
        return record

    def remove(self, record_id: str) -> bool:
        """Remove a record by ID. Returns True if it existed."""
        self.reload()
        if record_id in self._records:
            del self._records[record_id]
            self.save()
            return True
        return False

    def all(self) -> list[RecordT]:
        """Return all records."""
        return list(self._records.values())
