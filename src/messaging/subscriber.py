"""Subscriber: owns subscription records and their bookkeeping."""

from __future__ import annotations

import itertools
from collections.abc import Mapping

from .errors import PublisherDestroyedError, SubscriberDestroyedError
from .models import Handler, Subscription
from .publisher import Publisher


class Subscriber:
    """Named consumer of publisher notifications."""

    def __init__(self, id: str) -> None:
        self._id = id
        self._subscriptions: dict[str, Subscription] = {}
        self._publishers: dict[str, Publisher] = {}
        self._by_notification: dict[str, list[str]] = {}
        self._ids = itertools.count(1)
        self._destroyed = False

    def get_id(self) -> str:
        return self._id

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def subscriptions(self) -> Mapping[str, Subscription]:
        """Map of `subscription_id -> subscription` currently held."""
        return dict(self._subscriptions)

    def subscribe(self, publisher: Publisher, notification: str, handler: Handler) -> Subscription:
        """Subscribe `handler` to `notification` from `publisher`.

        The subscription is stored and registered with the publisher before
        `record_subscription` runs, so overrides of that hook can resolve it.
        """
        if self._destroyed:
            raise SubscriberDestroyedError(self._id)
        if publisher.destroyed:
            raise PublisherDestroyedError(publisher.get_id())

        subscription = Subscription(
            id=f"{self._id}:{next(self._ids)}",
            publisher_id=publisher.get_id(),
            subscriber_id=self._id,
            notification=notification,
            original_handler=handler,
        )
        self._subscriptions[subscription.id] = subscription
        self._publishers[subscription.id] = publisher
        publisher.add_subscription(subscription)

        self.record_subscription(subscription.id, notification)
        return subscription

    def record_subscription(self, subscription_id: str, notification: str) -> None:
        """Index a freshly created subscription by notification name."""
        self._by_notification.setdefault(notification, []).append(subscription_id)

    def find_subscription_by_id(self, subscription_id: str) -> Subscription | None:
        return self._subscriptions.get(subscription_id)

    def find_subscriptions_for(self, notification: str) -> list[Subscription]:
        """Subscriptions held for `notification`, in creation order."""
        return [self._subscriptions[sid] for sid in self._by_notification.get(notification, [])]

    def unsubscribe(self, subscription_id: str) -> bool:
        """Detach a subscription from its publisher. Returns False when unknown."""
        subscription = self._subscriptions.pop(subscription_id, None)
        if subscription is None:
            return False

        publisher = self._publishers.pop(subscription_id)
        publisher.remove_subscription(subscription_id)

        ids = self._by_notification.get(subscription.notification, [])
        if subscription_id in ids:
            ids.remove(subscription_id)
        if not ids:
            self._by_notification.pop(subscription.notification, None)
        return True

    def destroy(self) -> None:
        """Unsubscribe from everything. Safe to call multiple times."""
        for subscription_id in list(self._subscriptions):
            self.unsubscribe(subscription_id)
        self._destroyed = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r})"
