"""History record models.

Entries are:
- Append-only and immutable once created.
- Ordered by a process-wide sequence number.
- Filed under a single subject id (publisher or subscriber) for per-entity views.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


def snapshot(value: Any) -> Any:
    """Deep copy `value` so later mutation by its owner cannot rewrite history.

    Values that cannot be copied (locks, sockets, generators...) are kept by
    reference.
    """
    try:
        return copy.deepcopy(value)
    except Exception:  # noqa: BLE001 - uncopyable payloads are recorded as-is
        return value


class HistoryKind(str, Enum):
    PUBLISHER_RECORDED = "publisher_recorded"
    PUBLISHER_REMOVED = "publisher_removed"
    SUBSCRIBER_RECORDED = "subscriber_recorded"
    SUBSCRIBER_REMOVED = "subscriber_removed"
    PUBLICATION = "publication"
    NOTIFICATION_RECEIVED = "notification_received"
    SUBSCRIBER_ERROR = "subscriber_error"


class HistoryEntry(BaseModel):
    """One timestamped, sequence-numbered lifecycle or delivery event."""

    model_config = ConfigDict(frozen=True)

    # Process-wide ordering key, assigned by the history log on append.
    sequence: int

    timestamp: datetime = Field(default_factory=utc_now)

    kind: HistoryKind

    # The entity id this entry is filed under.
    subject_id: str

    message: str

    # Contextual ids, notification name, raw payload, error and trace accessor.
    payload: Mapping[str, Any] = Field(default_factory=lambda: MappingProxyType({}))

    @field_validator("payload", mode="after")
    def freeze_payload(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        """Store the payload as a read-only view over a private copy."""
        return MappingProxyType(dict(v))

    @property
    def notification(self) -> str | None:
        return self.payload.get("notification")

    def summary(self) -> dict[str, Any]:
        """Payload without callables, suitable for storage or display."""
        return {k: v for k, v in self.payload.items() if not callable(v)}
