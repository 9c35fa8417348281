"""History sinks (export backends).

Sinks receive a copy of every appended history entry. They exist for
inspection and offline querying; history is never read back from them.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import duckdb

from .models import HistoryEntry


class HistorySink(Protocol):
    """A synchronous sink for history entries."""

    def write(self, entry: HistoryEntry) -> None:
        """Persist a single entry."""

    def close(self) -> None:
        """Close any underlying resources."""


class InMemoryHistorySink:
    """In-memory sink for tests and local debugging."""

    def __init__(self) -> None:
        """Create an empty in-memory sink."""
        self._lock = threading.Lock()
        self._entries: list[HistoryEntry] = []

    def write(self, entry: HistoryEntry) -> None:
        """Append an entry to the in-memory list (thread-safe)."""
        with self._lock:
            self._entries.append(entry)

    def close(self) -> None:  # noqa: D401 - keep interface consistent
        """No-op."""

    def snapshot(self) -> Sequence[HistoryEntry]:
        """Return a point-in-time copy of all written entries."""
        with self._lock:
            return list(self._entries)


@dataclass(frozen=True)
class DuckDBOptions:
    path: Path
    table: str = "history_entries"


class DuckDBHistorySink:
    """DuckDB sink for querying a session's history with SQL.

    Pass ``":memory:"`` as the path for a throwaway database.
    """

    def __init__(self, *, path: str | Path, table: str = "history_entries") -> None:
        """Create (or open) a DuckDB-backed sink at the given path."""
        self._opts = DuckDBOptions(path=Path(path), table=table)
        self._lock = threading.Lock()
        self._conn = duckdb.connect(str(path))
        self._ensure_schema()

    @property
    def table(self) -> str:
        return self._opts.table

    def _ensure_schema(self) -> None:
        """Create the backing table if it does not exist yet."""
        create_sql = f"""
        create table if not exists {self._opts.table} (
          sequence bigint not null,
          timestamp timestamptz not null,
          kind varchar not null,
          subject_id varchar not null,
          message varchar not null,
          payload_json varchar not null
        )
        """
        with self._lock:
            self._conn.execute(create_sql)

    def write(self, entry: HistoryEntry) -> None:
        """Insert a single entry into DuckDB.

        Callables (trace accessors) are dropped; other payload values that are
        not JSON-native are stored as their string form.
        """
        payload_json = json.dumps(entry.summary(), separators=(",", ":"), sort_keys=True, default=repr)
        insert_sql = f"""
        insert into {self._opts.table}
        (sequence, timestamp, kind, subject_id, message, payload_json)
        values (?, ?, ?, ?, ?, ?)
        """
        with self._lock:
            self._conn.execute(
                insert_sql,
                [
                    entry.sequence,
                    entry.timestamp,
                    entry.kind.value,
                    entry.subject_id,
                    entry.message,
                    payload_json,
                ],
            )

    def query(self, sql: str, params: Sequence[object] | None = None) -> list[tuple]:
        """Run a read query against the sink's connection and return all rows."""
        with self._lock:
            return self._conn.execute(sql, params or []).fetchall()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        with self._lock:
            self._conn.close()
