"""Stack trace capture for history entries.

A trace is captured where an event happens and rendered only on demand, so
recording stays cheap and rendering never interferes with history appends.
"""

from __future__ import annotations

import traceback
from collections.abc import Callable

from logging_config import get_logger

logger = get_logger(__name__)

TraceAccessor = Callable[[], str]


class CapturedTrace:
    """Callable handle on a stack captured at construction time.

    Calling it logs the formatted stack at ERROR and returns it.
    """

    def __init__(self, label: str, *, limit: int | None = None, skip: int = 1) -> None:
        self.label = label
        # Drop the frames belonging to the capture machinery itself.
        frames = traceback.extract_stack(limit=None if limit is None else limit + skip)
        self._frames = frames[:-skip] if skip else frames

    def format(self) -> str:
        return f"Trace: {self.label}\n" + "".join(traceback.format_list(self._frames))

    def __call__(self) -> str:
        rendered = self.format()
        logger.error(rendered)
        return rendered

    def __repr__(self) -> str:
        return f"CapturedTrace({self.label!r}, frames={len(self._frames)})"


def capture_trace(label: str = "trace", *, enabled: bool = True, limit: int | None = None) -> TraceAccessor | None:
    """Capture the caller's stack, or return None when capture is disabled."""
    if not enabled:
        return None
    return CapturedTrace(label, limit=limit, skip=2)
