"""History primitives.

This package provides:
- Immutable, sequence-numbered history entries.
- An append-only log with a dedicated per-entity view.
- Stack trace capture for diagnosing where an event came from.
- Optional export sinks (in-memory, DuckDB) for inspecting a session's history.
"""

from .diagnostics import CapturedTrace, capture_trace
from .history import HistoryLog
from .models import HistoryEntry, HistoryKind, snapshot
from .sinks import DuckDBHistorySink, HistorySink, InMemoryHistorySink

__all__ = [
    "CapturedTrace",
    "DuckDBHistorySink",
    "HistoryEntry",
    "HistoryKind",
    "HistoryLog",
    "HistorySink",
    "InMemoryHistorySink",
    "capture_trace",
    "snapshot",
]
