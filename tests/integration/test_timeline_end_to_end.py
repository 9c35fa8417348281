from __future__ import annotations

import json

import pytest

from config import TimelineConfig
from main import run_demo
from observability import DuckDBHistorySink, HistoryKind, HistoryLog
from timeline import PubSubManager, TimelinePublisher, TimelineSubscriber, get_manager


def test_ping_scenario_through_process_wide_manager() -> None:
    p1 = TimelinePublisher("p1")
    s1 = TimelineSubscriber("s1")
    received: list[object] = []
    s1.subscribe(p1, "ping", received.append)

    p1.publish("ping", {"n": 1})

    manager = get_manager()
    p1_history = manager.get_history_for("p1")
    assert [e.kind for e in p1_history] == [HistoryKind.PUBLISHER_RECORDED, HistoryKind.PUBLICATION]
    assert p1_history[1].payload["notification"] == "ping"
    assert p1_history[1].payload["payload"] == {"n": 1}

    s1_history = manager.get_history_for("s1")
    assert [e.kind for e in s1_history] == [HistoryKind.SUBSCRIBER_RECORDED, HistoryKind.NOTIFICATION_RECEIVED]
    assert s1_history[1].payload["notification"] == "ping"
    assert received == [{"n": 1}]


def test_many_entities_interleave_in_one_history() -> None:
    manager = get_manager()
    publishers = [TimelinePublisher(f"p{i}") for i in range(3)]
    subscribers = [TimelineSubscriber(f"s{i}") for i in range(3)]
    for subscriber in subscribers:
        for publisher in publishers:
            subscriber.subscribe(publisher, "tick", lambda payload: None)

    for round_ in range(2):
        for publisher in publishers:
            publisher.publish("tick", round_)

    history = manager.get_history()
    assert [e.sequence for e in history] == sorted(e.sequence for e in history)
    received = [e for e in history if e.kind is HistoryKind.NOTIFICATION_RECEIVED]
    assert len(received) == 2 * 3 * 3
    for subscriber in subscribers:
        mine = manager.get_history_for(subscriber.get_id())
        assert mine == [e for e in history if e.subject_id == subscriber.get_id()]


def test_duckdb_sink_mirrors_history_for_sql_queries() -> None:
    sink = DuckDBHistorySink(path=":memory:")
    manager = PubSubManager(history=HistoryLog(sink=sink))

    publisher = TimelinePublisher("p1", manager=manager)
    subscriber = TimelineSubscriber("s1", manager=manager)

    def handler(payload: object) -> None:
        raise RuntimeError("nope")

    subscriber.subscribe(publisher, "ping", handler)
    with pytest.raises(RuntimeError):
        publisher.publish("ping", {"n": 1})

    rows = sink.query(f"select sequence, kind, subject_id from {sink.table} order by sequence")
    assert [(kind, subject) for _, kind, subject in rows] == [
        (e.kind.value, e.subject_id) for e in manager.get_history()
    ]

    [(payload_json,)] = sink.query(
        f"select payload_json from {sink.table} where kind = ?", [HistoryKind.SUBSCRIBER_ERROR.value]
    )
    payload = json.loads(payload_json)
    assert payload["notification"] == "ping"
    assert payload["payload"] == {"n": 1}
    assert "nope" in payload["error"]
    assert "get_trace" not in payload

    manager.history.close()


def test_demo_run_records_full_lifecycle() -> None:
    manager = PubSubManager.from_config(TimelineConfig(sink="memory", trace_depth=10))

    history = run_demo(manager)

    kinds = [e.kind for e in history]
    assert kinds.count(HistoryKind.PUBLICATION) == 3
    assert kinds.count(HistoryKind.NOTIFICATION_RECEIVED) == 3
    assert kinds.count(HistoryKind.SUBSCRIBER_ERROR) == 1
    assert kinds[-2:] == [HistoryKind.SUBSCRIBER_REMOVED, HistoryKind.PUBLISHER_REMOVED]
    assert manager.publishers == {}
    assert manager.subscribers == {}
