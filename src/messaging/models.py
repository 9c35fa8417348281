"""Subscription records.

A subscription links one subscriber to one notification of one publisher.
The handler the publisher calls is the original handler composed with any
decorators applied after creation; the original stays reachable so wrapping
never replaces the subscriber's intent.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeAlias

Handler: TypeAlias = Callable[[Any], Any]
HandlerDecorator: TypeAlias = Callable[[Handler], Handler]


@dataclass
class Subscription:
    """A subscriber's interest in one publisher notification."""

    id: str
    publisher_id: str
    subscriber_id: str
    notification: str
    original_handler: Handler
    _decorators: list[HandlerDecorator] = field(default_factory=list, init=False, repr=False)
    _composed: Handler | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def handler(self) -> Handler:
        """The handler publishers call: the original wrapped by every decorator."""
        if self._composed is None:
            composed = self.original_handler
            for decorator in self._decorators:
                composed = decorator(composed)
            self._composed = composed
        return self._composed

    @property
    def decorators(self) -> tuple[HandlerDecorator, ...]:
        return tuple(self._decorators)

    @property
    def decorated(self) -> bool:
        return bool(self._decorators)

    def decorate(self, decorator: HandlerDecorator) -> None:
        """Wrap the current handler chain with `decorator`.

        Decorators compose in application order: the last one applied is the
        outermost call.
        """
        self._decorators.append(decorator)
        self._composed = None
