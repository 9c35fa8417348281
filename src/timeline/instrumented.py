"""Instrumented publisher and subscriber.

Both register themselves with a manager on construction and announce their
lifecycle on a private channel the manager listens to. Application
notifications are delivered exactly as the plain classes deliver them.
"""

from __future__ import annotations

from typing import Any

from messaging import Publisher, PublisherDestroyedError, Subscriber

from .events import DestroyEvent, LifecycleNotification, PublishEvent, SubscribeEvent
from .manager import PubSubManager, get_manager


class TimelinePublisher(Publisher):
    """Publisher whose publications and destruction are recorded by a manager."""

    def __init__(self, id: str, *, manager: PubSubManager | None = None) -> None:
        """Create the publisher and record it with `manager` (the process-wide one by default)."""
        super().__init__(id)
        self._lifecycle = Publisher(f"{id}-lifecycle")
        self._manager = manager if manager is not None else get_manager()
        self._manager.record_publisher(self)

    @property
    def lifecycle(self) -> Publisher:
        """Private channel carrying this publisher's lifecycle events."""
        return self._lifecycle

    @property
    def manager(self) -> PubSubManager:
        return self._manager

    def publish(self, notification: str, payload: Any = None) -> None:
        """Announce the publication to the manager, then deliver it."""
        if self.destroyed:
            raise PublisherDestroyedError(self.get_id())

        get_trace = self._manager.capture(f'"{self.get_id()}" publish "{notification}"')
        self._lifecycle.publish(
            LifecycleNotification.PUBLISH.value,
            PublishEvent(publisher=self, notification=notification, payload=payload, get_trace=get_trace),
        )
        super().publish(notification, payload)

    def destroy(self) -> None:
        """Publish "destroy", announce removal to the manager, then tear down."""
        if self.destroyed:
            return
        self.publish("destroy")
        self._lifecycle.publish(LifecycleNotification.DESTROY.value, DestroyEvent(entity_id=self.get_id()))
        self._lifecycle.destroy()
        super().destroy()


class TimelineSubscriber(Subscriber):
    """Subscriber whose subscriptions are instrumented by a manager.

    A private proxy publisher announces new subscriptions and destruction; it
    is only ever attached to the manager.
    """

    def __init__(self, id: str, *, manager: PubSubManager | None = None) -> None:
        """Create the subscriber and its proxy, then record it with `manager`."""
        super().__init__(id)
        self._proxy = Publisher(f"{id}-publisher-proxy")
        self._manager = manager if manager is not None else get_manager()
        self._manager.record_subscribers(self)

    def get_proxy(self) -> Publisher:
        return self._proxy

    @property
    def manager(self) -> PubSubManager:
        return self._manager

    def record_subscription(self, subscription_id: str, notification: str) -> None:
        """Index the subscription, then let the manager instrument its handler."""
        super().record_subscription(subscription_id, notification)
        self._proxy.publish(
            LifecycleNotification.SUBSCRIBE.value,
            SubscribeEvent(subscription=self.find_subscription_by_id(subscription_id), notification=notification),
        )

    def destroy(self) -> None:
        """Announce removal while the proxy still works, then tear down."""
        if self.destroyed:
            return
        self._proxy.publish(LifecycleNotification.DESTROY.value, DestroyEvent(entity_id=self.get_id()))
        self._proxy.destroy()
        super().destroy()
