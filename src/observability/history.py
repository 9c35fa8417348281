"""Append-only history log with per-entity views."""

from __future__ import annotations

import itertools
import threading
from datetime import datetime
from typing import Any

from logging_config import get_logger

from .models import HistoryEntry, HistoryKind, utc_now
from .sinks import HistorySink

logger = get_logger(__name__)

# Shared by every log so sequence numbers never repeat within the process.
_sequence = itertools.count()
_sequence_lock = threading.Lock()


def _next_sequence() -> int:
    with _sequence_lock:
        return next(_sequence)


class HistoryLog:
    """Ordered global history plus a dedicated sub-history per subject id.

    Every entry lands in the global list and in the bucket of its subject, so
    each bucket is an order-preserving subsequence of the global list. Nothing
    is ever removed or replaced.
    """

    def __init__(self, *, sink: HistorySink | None = None) -> None:
        """Create an empty log, optionally mirroring entries to `sink`.

        Args:
            sink: Export backend. Write failures are tracked, never raised.
        """
        self._lock = threading.RLock()
        self._entries: list[HistoryEntry] = []
        self._dedicated: dict[str, list[HistoryEntry]] = {}
        self._sink = sink

        # Degradation tracking: sink write failures and their time window.
        self._write_failures = 0
        self._first_failure_at: datetime | None = None
        self._last_failure_at: datetime | None = None

    def append(
        self,
        kind: HistoryKind,
        subject_id: str,
        message: str,
        payload: dict[str, Any] | None = None,
    ) -> HistoryEntry:
        """Create, file and return a new entry."""
        with self._lock:
            entry = HistoryEntry(
                sequence=_next_sequence(),
                timestamp=utc_now(),
                kind=kind,
                subject_id=subject_id,
                message=message,
                payload=dict(payload or {}),
            )
            self._entries.append(entry)
            self._dedicated.setdefault(subject_id, []).append(entry)
            self._export(entry)
        return entry

    def _export(self, entry: HistoryEntry) -> None:
        if self._sink is None:
            return
        try:
            self._sink.write(entry)
        except Exception:  # noqa: BLE001 - export must not break recording
            logger.warning("History sink write failed for entry %s", entry.sequence, exc_info=True)
            now = utc_now()
            self._write_failures += 1
            self._first_failure_at = self._first_failure_at or now
            self._last_failure_at = now

    def entries(self) -> list[HistoryEntry]:
        """Copy of the global history."""
        with self._lock:
            return list(self._entries)

    def entries_for(self, subject_id: str) -> list[HistoryEntry]:
        """Copy of the dedicated history for `subject_id` (empty when unknown)."""
        with self._lock:
            return list(self._dedicated.get(subject_id, ()))

    def subject_ids(self) -> list[str]:
        """Ids with at least one entry, in order of first appearance."""
        with self._lock:
            return list(self._dedicated)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def close(self) -> None:
        """Close the sink, if any. The in-memory history stays readable."""
        if self._sink is not None:
            self._sink.close()

    def degraded_status(self) -> dict[str, Any]:
        """Return a minimal degraded-status snapshot."""
        return {
            "write_failures": self._write_failures,
            "first_failure_at": self._first_failure_at,
            "last_failure_at": self._last_failure_at,
        }
