"""Per-owner credential sets for external systems."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from opsdispatch.store.base import JsonStore
from opsdispatch.store.models import Integration, IntegrationKind


@runtime_checkable
class CredentialStore(Protocol):
    """Anything that can resolve an owner's active credentials for a system."""

    def get_credential(self, owner_id: str, kind: IntegrationKind) -> Integration | None: ...


class IntegrationStore(JsonStore[Integration]):
    """JSON-backed CredentialStore."""

    model = Integration

    def get_credential(self, owner_id: str, kind: IntegrationKind) -> Integration | None:
        """Return the first active integration of ``kind`` owned by ``owner_id``."""
        self.load()
        for integration in self._records.values():
            if integration.owner_id == owner_id and integration.kind == kind and integration.is_active:
                return integration
        return None
