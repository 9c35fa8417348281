"""Synchronous publisher.

`publish` runs every matching handler before returning. A handler exception
propagates to the caller unchanged and stops delivery of that publication to
the remaining subscriptions.
"""

from __future__ import annotations

from typing import Any

from .errors import PublisherDestroyedError
from .models import Subscription


class Publisher:
    """Named source of notifications."""

    def __init__(self, id: str) -> None:
        self._id = id
        # notification -> subscription_id -> subscription (insertion ordered)
        self._subscriptions: dict[str, dict[str, Subscription]] = {}
        self._destroyed = False

    def get_id(self) -> str:
        return self._id

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def add_subscription(self, subscription: Subscription) -> None:
        """Register a subscription for delivery of its notification."""
        if self._destroyed:
            raise PublisherDestroyedError(self._id)
        self._subscriptions.setdefault(subscription.notification, {})[subscription.id] = subscription

    def remove_subscription(self, subscription_id: str) -> bool:
        """Stop delivering to `subscription_id`. Returns False when it was not registered."""
        for notification, by_id in list(self._subscriptions.items()):
            if by_id.pop(subscription_id, None) is not None:
                if not by_id:
                    del self._subscriptions[notification]
                return True
        return False

    def subscription_count(self, notification: str | None = None) -> int:
        """Count registered subscriptions, optionally for a single notification."""
        if notification is not None:
            return len(self._subscriptions.get(notification, {}))
        return sum(len(by_id) for by_id in self._subscriptions.values())

    def publish(self, notification: str, payload: Any = None) -> None:
        """Deliver `payload` to every subscription for `notification`, in subscription order."""
        if self._destroyed:
            raise PublisherDestroyedError(self._id)
        # Snapshot so handlers may (un)subscribe while we deliver.
        for subscription in list(self._subscriptions.get(notification, {}).values()):
            subscription.handler(payload)

    def destroy(self) -> None:
        """Drop every subscription. Safe to call multiple times."""
        self._subscriptions.clear()
        self._destroyed = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r})"
