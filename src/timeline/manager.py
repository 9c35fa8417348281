"""Process-wide pub/sub manager.

The manager observes every recorded publisher and subscriber through an
internal proxy subscriber attached to the entities' lifecycle channels. It
keeps:
- live registries of publishers and subscribers by id;
- one history log with a dedicated sub-history per entity id.

Subscriber handlers are decorated once, when the subscription is created, so
every later delivery and delivery failure is recorded. Failures are re-raised
unchanged: instrumentation only observes.
"""

from __future__ import annotations

import functools
import threading
from collections.abc import Callable, Mapping
from typing import Any

from config import TimelineConfig, load_config
from logging_config import get_logger
from messaging import Handler, Publisher, Subscriber, Subscription
from observability import (
    DuckDBHistorySink,
    HistoryEntry,
    HistoryKind,
    HistoryLog,
    HistorySink,
    InMemoryHistorySink,
    capture_trace,
    snapshot,
)

from .events import (
    LifecycleNotification,
    ObservablePublisher,
    ObservableSubscriber,
    PublishEvent,
    SubscribeEvent,
)

logger = get_logger(__name__)

GLOBAL_MANAGER_ID = "__pubsub_timeline_manager"

# Notifications that describe an entity's own lifecycle, not application traffic.
SYSTEM_NOTIFICATIONS = frozenset({"destroy"})

_managers: dict[str, PubSubManager] = {}
_managers_lock = threading.Lock()


def get_manager() -> PubSubManager:
    """Return the process-wide manager, creating it from `load_config()` on first use."""
    with _managers_lock:
        manager = _managers.get(GLOBAL_MANAGER_ID)
        if manager is None:
            manager = PubSubManager.from_config(load_config())
            _managers[GLOBAL_MANAGER_ID] = manager
        return manager


def set_manager(manager: PubSubManager | None) -> PubSubManager | None:
    """Install `manager` as the process-wide instance and return the previous one.

    Passing None clears it; the next `get_manager()` call builds a fresh one.
    """
    with _managers_lock:
        previous = _managers.pop(GLOBAL_MANAGER_ID, None)
        if manager is not None:
            _managers[GLOBAL_MANAGER_ID] = manager
        return previous


def build_sink(config: TimelineConfig) -> HistorySink | None:
    """Create the history sink selected by `config.sink`."""
    if config.sink == "memory":
        return InMemoryHistorySink()
    if config.sink == "duckdb":
        return DuckDBHistorySink(path=config.duckdb_path)
    return None


class _DeliveryRecorder:
    """Subscription decorator that records deliveries and delivery failures."""

    def __init__(self, manager: PubSubManager, subscription: Subscription, notification: str) -> None:
        self.manager = manager
        self.subscription = subscription
        self.notification = notification

    def __call__(self, handler: Handler) -> Handler:
        @functools.wraps(handler)
        def recorded(payload: Any) -> Any:
            self.manager._record_delivery(self.subscription, self.notification, payload)
            try:
                return handler(payload)
            except Exception as error:
                self.manager._record_failure(self.subscription, self.notification, payload, error)
                raise

        return recorded


class PubSubManager:
    """Shared observation point for instrumented publishers and subscribers."""

    def __init__(
        self,
        *,
        history: HistoryLog | None = None,
        capture_traces: bool = True,
        trace_depth: int | None = None,
    ) -> None:
        """Create a manager with an empty history and empty registries.

        Args:
            history: Log to append to; a fresh in-memory log when omitted.
            capture_traces: Attach a stack trace accessor to history entries.
            trace_depth: Max frames kept per trace (unbounded when None).
        """
        self._lock = threading.RLock()
        self._history = history if history is not None else HistoryLog()
        self._publishers: dict[str, ObservablePublisher] = {}
        self._subscribers: dict[str, ObservableSubscriber] = {}
        self._proxy = Subscriber(GLOBAL_MANAGER_ID)
        # lifecycle channel -> proxy subscription ids attached to it
        self._attachments: dict[Publisher, list[str]] = {}

        self.capture_traces = capture_traces
        self.trace_depth = trace_depth

    @classmethod
    def from_config(cls, config: TimelineConfig) -> PubSubManager:
        """Build a manager from configuration (sink + trace capture)."""
        return cls(
            history=HistoryLog(sink=build_sink(config)),
            capture_traces=config.capture_traces,
            trace_depth=config.trace_depth,
        )

    @property
    def history(self) -> HistoryLog:
        return self._history

    @property
    def publishers(self) -> Mapping[str, ObservablePublisher]:
        """Live publishers by id."""
        with self._lock:
            return dict(self._publishers)

    @property
    def subscribers(self) -> Mapping[str, ObservableSubscriber]:
        """Live subscribers by id."""
        with self._lock:
            return dict(self._subscribers)

    def capture(self, label: str) -> Callable[[], str] | None:
        """Capture the caller's stack according to this manager's trace settings."""
        return capture_trace(label, enabled=self.capture_traces, limit=self.trace_depth)

    # Registration

    def record_publisher(self, publisher: ObservablePublisher) -> None:
        """Register `publisher` and observe its publications and destruction.

        Recording an id twice overwrites the registry entry and appends a
        second `publisher_recorded` entry.
        """
        publisher_id = publisher.get_id()
        get_trace = self.capture(f'Publisher "{publisher_id}" recorded')
        channel = publisher.lifecycle

        with self._lock:
            self._publishers[publisher_id] = publisher
            self._attach(
                channel,
                {
                    LifecycleNotification.PUBLISH: self._before_publish,
                    LifecycleNotification.DESTROY: lambda event: self._remove_publisher(publisher, channel),
                },
            )
            self._history.append(
                HistoryKind.PUBLISHER_RECORDED,
                publisher_id,
                f'Publisher "{publisher_id}" added to manager.',
                {"publisher_id": publisher_id, "get_trace": get_trace},
            )
        logger.info("Publisher %r recorded", publisher_id)

    def record_subscribers(self, subscriber: ObservableSubscriber) -> None:
        """Register `subscriber` and observe its subscriptions and destruction."""
        subscriber_id = subscriber.get_id()
        get_trace = self.capture(f'Subscriber "{subscriber_id}" recorded')
        channel = subscriber.get_proxy()

        with self._lock:
            self._subscribers[subscriber_id] = subscriber
            self._history.append(
                HistoryKind.SUBSCRIBER_RECORDED,
                subscriber_id,
                f'Subscriber "{subscriber_id}" added to manager.',
                {"subscriber_id": subscriber_id, "get_trace": get_trace},
            )
            self._attach(
                channel,
                {
                    LifecycleNotification.SUBSCRIBE: self._on_subscribe,
                    LifecycleNotification.DESTROY: lambda event: self._remove_subscriber(subscriber, channel),
                },
            )
        logger.info("Subscriber %r recorded", subscriber_id)

    # Queries

    def get_history(self) -> list[HistoryEntry]:
        """Copy of the full history, in sequence order."""
        return self._history.entries()

    def get_history_for(self, id: str) -> list[HistoryEntry]:
        """Copy of the history filed under `id`; empty for unknown ids."""
        return self._history.entries_for(id)

    # Lifecycle handlers

    def _attach(self, channel: Publisher, handlers: dict[LifecycleNotification, Handler]) -> None:
        # Re-recording the same entity must not observe its channel twice.
        if channel in self._attachments:
            return
        ids = self._attachments.setdefault(channel, [])
        for notification, handler in handlers.items():
            ids.append(self._proxy.subscribe(channel, notification.value, handler).id)

    def _detach(self, channel: Publisher) -> None:
        for subscription_id in self._attachments.pop(channel, []):
            self._proxy.unsubscribe(subscription_id)

    def _before_publish(self, event: PublishEvent) -> None:
        publisher_id = event.publisher.get_id()
        logger.debug("Before publish %r from %r", event.notification, publisher_id)
        # Destruction is recorded through the destroy lifecycle event instead.
        if event.notification in SYSTEM_NOTIFICATIONS:
            return

        self._history.append(
            HistoryKind.PUBLICATION,
            publisher_id,
            f'"{publisher_id}" publish "{event.notification}".',
            {
                "publisher_id": publisher_id,
                "get_trace": event.get_trace,
                "notification": event.notification,
                "payload": snapshot(event.payload),
            },
        )

    def _on_subscribe(self, event: SubscribeEvent) -> None:
        subscription = event.subscription
        if subscription is None:
            logger.warning("Subscribe event for %r without a resolvable subscription", event.notification)
            return

        already = any(
            isinstance(decorator, _DeliveryRecorder) and decorator.manager is self
            for decorator in subscription.decorators
        )
        if already:
            return

        logger.debug(
            "Instrumenting subscription %r (%r -> %r on %r)",
            subscription.id,
            subscription.publisher_id,
            subscription.subscriber_id,
            event.notification,
        )
        subscription.decorate(_DeliveryRecorder(self, subscription, event.notification))

    def _record_delivery(self, subscription: Subscription, notification: str, payload: Any) -> None:
        self._history.append(
            HistoryKind.NOTIFICATION_RECEIVED,
            subscription.subscriber_id,
            f'"{subscription.subscriber_id}" receives notification "{notification}" '
            f'from "{subscription.publisher_id}".',
            {
                "publisher_id": subscription.publisher_id,
                "subscriber_id": subscription.subscriber_id,
                "subscription_id": subscription.id,
                "get_trace": self.capture(f'"{subscription.subscriber_id}" receives "{notification}"'),
                "notification": notification,
                "payload": snapshot(payload),
            },
        )

    def _record_failure(self, subscription: Subscription, notification: str, payload: Any, error: Exception) -> None:
        logger.error(
            "Subscriber %r failed to process %r from %r",
            subscription.subscriber_id,
            notification,
            subscription.publisher_id,
            exc_info=error,
            extra={"context": {"subscription_id": subscription.id}},
        )
        self._history.append(
            HistoryKind.SUBSCRIBER_ERROR,
            subscription.subscriber_id,
            f'Subscriber "{subscription.subscriber_id}" failed to process "{notification}" '
            f'notification published by "{subscription.publisher_id}".',
            {
                "publisher_id": subscription.publisher_id,
                "subscriber_id": subscription.subscriber_id,
                "subscription_id": subscription.id,
                "get_trace": self.capture(f'"{subscription.subscriber_id}" failed on "{notification}"'),
                "notification": notification,
                "error": error,
                "payload": snapshot(payload),
            },
        )

    def _remove_publisher(self, publisher: ObservablePublisher, channel: Publisher) -> None:
        publisher_id = publisher.get_id()
        with self._lock:
            # A newer registration under the same id stays live.
            if self._publishers.get(publisher_id) is publisher:
                del self._publishers[publisher_id]
            self._detach(channel)
            self._history.append(
                HistoryKind.PUBLISHER_REMOVED,
                publisher_id,
                f'Publisher "{publisher_id}" removed from manager.',
                {"publisher_id": publisher_id},
            )
        logger.info("Publisher %r removed", publisher_id)

    def _remove_subscriber(self, subscriber: ObservableSubscriber, channel: Publisher) -> None:
        subscriber_id = subscriber.get_id()
        get_trace = self.capture(f'Subscriber "{subscriber_id}" removed')
        with self._lock:
            if self._subscribers.get(subscriber_id) is subscriber:
                del self._subscribers[subscriber_id]
            self._detach(channel)
            self._history.append(
                HistoryKind.SUBSCRIBER_REMOVED,
                subscriber_id,
                f'Subscriber "{subscriber_id}" removed from manager.',
                {"subscriber_id": subscriber_id, "get_trace": get_trace},
            )
        logger.info("Subscriber %r removed", subscriber_id)
