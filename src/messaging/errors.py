"""Messaging error types.

All errors inherit from MessagingError for easy catching.
"""

from __future__ import annotations


class MessagingError(Exception):
    """Base exception for misuse of publishers and subscribers."""


class PublisherDestroyedError(MessagingError):
    """Raised when publishing on (or subscribing to) a destroyed publisher."""

    def __init__(self, publisher_id: str) -> None:
        self.publisher_id = publisher_id
        super().__init__(f"Publisher {publisher_id!r} has been destroyed")


class SubscriberDestroyedError(MessagingError):
    """Raised when a destroyed subscriber tries to subscribe again."""

    def __init__(self, subscriber_id: str) -> None:
        self.subscriber_id = subscriber_id
        super().__init__(f"Subscriber {subscriber_id!r} has been destroyed")
