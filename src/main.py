"""Demo entrypoint wiring an instrumented publisher and subscriber.

This module contains a small, end-to-end "smoke test" that:

- Loads configuration from environment and sets up logging.
- Creates a publisher and a subscriber recorded by the process-wide manager.
- Publishes a few notifications, including one the subscriber fails on.
- Prints the global history and each entity's dedicated history.

It is a convenient manual harness, not an API.
"""

from __future__ import annotations

from config import load_config
from logging_config import get_logger, setup_logging
from observability import HistoryEntry
from timeline import PubSubManager, TimelinePublisher, TimelineSubscriber, set_manager

logger = get_logger(__name__)


def _format_entry(entry: HistoryEntry) -> str:
    return f"#{entry.sequence:<4} {entry.timestamp.isoformat()} {entry.kind.value:<22} {entry.message}"


def run_demo(manager: PubSubManager) -> list[HistoryEntry]:
    """Drive one publisher/subscriber pair through a full lifecycle and return the history."""
    publisher = TimelinePublisher("p1", manager=manager)
    subscriber = TimelineSubscriber("s1", manager=manager)

    received: list[dict] = []

    def on_ping(payload: dict) -> None:
        received.append(payload)

    def on_fail(payload: dict) -> None:
        raise RuntimeError(f"cannot handle {payload!r}")

    subscriber.subscribe(publisher, "ping", on_ping)
    subscriber.subscribe(publisher, "fail", on_fail)

    publisher.publish("ping", {"n": 1})
    publisher.publish("ping", {"n": 2})
    try:
        publisher.publish("fail", {"n": 3})
    except RuntimeError as exc:
        logger.info("Delivery failed as expected: %s", exc)

    subscriber.destroy()
    publisher.destroy()

    logger.info("Subscriber handled %d notifications", len(received))
    return manager.get_history()


def main() -> None:
    config = load_config()
    setup_logging(config.log_level)

    manager = PubSubManager.from_config(config)
    set_manager(manager)
    try:
        history = run_demo(manager)

        print("Global history:")
        for entry in history:
            print(_format_entry(entry))

        for subject_id in manager.history.subject_ids():
            print(f"\nHistory for {subject_id!r}:")
            for entry in manager.get_history_for(subject_id):
                print(_format_entry(entry))
    finally:
        manager.history.close()


if __name__ == "__main__":
    main()
