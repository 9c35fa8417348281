from __future__ import annotations

import pytest

from messaging import Publisher, PublisherDestroyedError
from observability import HistoryKind
from timeline import PubSubManager, TimelinePublisher, TimelineSubscriber, get_manager


def test_entities_default_to_process_wide_manager() -> None:
    publisher = TimelinePublisher("p1")
    subscriber = TimelineSubscriber("s1")

    assert publisher.manager is get_manager()
    assert subscriber.manager is get_manager()
    assert set(get_manager().publishers) == {"p1"}
    assert set(get_manager().subscribers) == {"s1"}


def test_injected_manager_is_isolated_from_global(manager: PubSubManager) -> None:
    TimelinePublisher("p1", manager=manager)

    assert get_manager().get_history() == []
    assert len(manager.get_history()) == 1


def test_application_notifications_reach_subscribers_unchanged(manager: PubSubManager) -> None:
    publisher = TimelinePublisher("p1", manager=manager)
    subscriber = TimelineSubscriber("s1", manager=manager)
    received: list[object] = []
    subscriber.subscribe(publisher, "x", received.append)

    publisher.publish("x", {"n": 1})
    publisher.publish("other", {"n": 2})

    assert received == [{"n": 1}]


def test_lifecycle_names_do_not_collide_with_application_notifications(manager: PubSubManager) -> None:
    publisher = TimelinePublisher("p1", manager=manager)
    subscriber = TimelineSubscriber("s1", manager=manager)
    received: list[tuple[str, object]] = []
    subscriber.subscribe(publisher, "publish", lambda payload: received.append(("publish", payload)))
    subscriber.subscribe(publisher, "subscribe", lambda payload: received.append(("subscribe", payload)))

    publisher.publish("publish", 1)
    publisher.publish("subscribe", 2)

    # Only the application payloads arrive; lifecycle events travel elsewhere.
    assert received == [("publish", 1), ("subscribe", 2)]
    publications = [e for e in manager.get_history_for("p1") if e.kind is HistoryKind.PUBLICATION]
    assert [e.payload["notification"] for e in publications] == ["publish", "subscribe"]


def test_destroy_notifies_application_subscribers(manager: PubSubManager) -> None:
    publisher = TimelinePublisher("p1", manager=manager)
    subscriber = TimelineSubscriber("s1", manager=manager)
    received: list[object] = []
    subscriber.subscribe(publisher, "destroy", received.append)

    publisher.destroy()

    assert received == [None]
    assert publisher.destroyed
    assert publisher.lifecycle.destroyed
    # The subscriber saw the delivery even though the publication itself is not recorded.
    assert [e.kind for e in manager.get_history_for("s1")][-1] is HistoryKind.NOTIFICATION_RECEIVED


def test_publish_after_destroy_raises_with_publisher_id(manager: PubSubManager) -> None:
    publisher = TimelinePublisher("p1", manager=manager)
    publisher.destroy()

    with pytest.raises(PublisherDestroyedError) as excinfo:
        publisher.publish("x")

    assert excinfo.value.publisher_id == "p1"


def test_subscriber_proxy_is_private_side_channel(manager: PubSubManager) -> None:
    subscriber = TimelineSubscriber("s1", manager=manager)

    proxy = subscriber.get_proxy()

    assert proxy.get_id() == "s1-publisher-proxy"
    assert proxy is not subscriber
    subscriber.destroy()
    assert proxy.destroyed


def test_subscriber_destroy_detaches_its_subscriptions(manager: PubSubManager) -> None:
    publisher = TimelinePublisher("p1", manager=manager)
    subscriber = TimelineSubscriber("s1", manager=manager)
    subscriber.subscribe(publisher, "x", print)

    subscriber.destroy()

    assert publisher.subscription_count("x") == 0
    publisher.publish("x")
    assert [e.kind for e in manager.get_history_for("s1")] == [
        HistoryKind.SUBSCRIBER_RECORDED,
        HistoryKind.SUBSCRIBER_REMOVED,
    ]


def test_deliveries_from_plain_publishers_are_recorded(manager: PubSubManager) -> None:
    plain = Publisher("plain")
    subscriber = TimelineSubscriber("s1", manager=manager)
    subscriber.subscribe(plain, "x", lambda payload: None)

    plain.publish("x", 5)

    received = manager.get_history_for("s1")[-1]
    assert received.kind is HistoryKind.NOTIFICATION_RECEIVED
    assert received.payload["publisher_id"] == "plain"
    assert manager.get_history_for("plain") == []


def test_original_handler_stays_reachable(manager: PubSubManager) -> None:
    publisher = TimelinePublisher("p1", manager=manager)
    subscriber = TimelineSubscriber("s1", manager=manager)

    def handler(payload: object) -> None:
        return None

    subscription = subscriber.subscribe(publisher, "x", handler)

    assert subscription.original_handler is handler
    assert subscription.handler is not handler
    assert subscription.handler.__wrapped__ is handler
