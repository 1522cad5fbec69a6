"""Message templates used by scheduled reports."""

from __future__ import annotations

from opsdispatch.store.base import JsonStore
from opsdispatch.store.models import MessageTemplate


class TemplateStore(JsonStore[MessageTemplate]):
    model = MessageTemplate

    def active(self, template_id: str) -> MessageTemplate | None:
        """Return the template if it exists and is active."""
        self.load()
        template = self._records.get(template_id)
        if template is None or not template.is_active:
            return None
        return template
