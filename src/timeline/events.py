"""Typed lifecycle events.

Instrumented entities announce their own activity on a private channel (a
plain `Publisher` only the manager subscribes to). Keeping these events off
the entity's application channel means application notifications named
"publish", "subscribe" or "destroy" never collide with them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from messaging import Publisher, Subscription
from observability.diagnostics import TraceAccessor


class LifecycleNotification(str, Enum):
    PUBLISH = "publish"
    SUBSCRIBE = "subscribe"
    DESTROY = "destroy"


@dataclass(frozen=True)
class PublishEvent:
    """Raised before a publisher delivers `notification` to its subscribers."""

    publisher: Publisher
    notification: str
    payload: Any = None
    get_trace: TraceAccessor | None = None


@dataclass(frozen=True)
class SubscribeEvent:
    """Raised once a subscriber has stored and registered a new subscription."""

    subscription: Subscription | None
    notification: str


@dataclass(frozen=True)
class DestroyEvent:
    """Raised as the last lifecycle event of an entity."""

    entity_id: str


class ObservablePublisher(Protocol):
    """A publisher that announces its lifecycle on a private channel."""

    def get_id(self) -> str: ...

    @property
    def lifecycle(self) -> Publisher: ...


class ObservableSubscriber(Protocol):
    """A subscriber that announces its lifecycle on a private proxy publisher."""

    def get_id(self) -> str: ...

    def get_proxy(self) -> Publisher: ...
