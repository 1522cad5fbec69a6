"""Webhook subscriptions: matching and trigger counters."""

from __future__ import annotations

from datetime import datetime

from opsdispatch.store.base import JsonStore
from opsdispatch.store.models import WebhookSubscription


class SubscriptionStore(JsonStore[WebhookSubscription]):
    model = WebhookSubscription

    def matching(self, trigger_type: str) -> list[WebhookSubscription]:
        """Active subscriptions for a trigger type. Raises StoreError if unreadable."""
        self.reload()
        return [
            s for s in self._records.values() if s.is_active and s.trigger_type == trigger_type
        ]

    def mark_triggered(self, subscription_id: str, at: datetime) -> WebhookSubscription | None:
        """Increment trigger_count and stamp last_triggered."""
        self.reload()
        subscription = self._records.get(subscription_id)
        if subscription is None:
            return None
        subscription.trigger_count += 1
        subscription.last_triggered = at
        self.save()
        return subscription
