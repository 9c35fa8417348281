"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting environment variables into a strongly-typed Pydantic model.
- Validating values and providing actionable error messages.
"""

import logging
import os
from typing import Literal, TypeVar

import dotenv
from pydantic import BaseModel, Field, field_validator

_T = TypeVar("_T", int, float)

SinkKind = Literal["none", "memory", "duckdb"]


def _get_env_str(name: str, default: str) -> str:
    """Read a string env var with a default (blank counts as unset)."""
    raw = os.getenv(name, "").strip()
    return raw or default


def _get_env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (true/false). Got: {raw!r}")


def _get_env_number(name: str, default: _T, cast: type[_T]) -> _T:
    """Read an int/float env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a {cast.__name__}. Got: {raw!r}") from exc


class TimelineConfig(BaseModel):
    """Configuration for the pub/sub timeline manager."""

    log_level: str = Field(default="INFO", description="Root log level")
    capture_traces: bool = Field(default=True, description="Capture a stack trace for each history entry")
    trace_depth: int = Field(default=25, description="Max frames kept per captured trace")
    sink: SinkKind = Field(default="none", description="Where history entries are mirrored")
    duckdb_path: str = Field(default="timeline_history.duckdb", description="DuckDB file for the duckdb sink")

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        normalized = v.strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"TIMELINE_LOG_LEVEL must be a logging level name. Got: {v!r}")
        return normalized

    @field_validator("trace_depth")
    def validate_trace_depth(cls, v: int) -> int:
        """Trace depth must be positive."""
        if v <= 0:
            raise ValueError(f"TIMELINE_TRACE_DEPTH must be > 0. Got: {v}")
        return v


def load_config() -> TimelineConfig:
    """Load timeline configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Raises `ValueError` with actionable messages for malformed values.
    """
    dotenv.load_dotenv()

    sink = _get_env_str("TIMELINE_SINK", "none").lower()
    if sink not in {"none", "memory", "duckdb"}:
        raise ValueError(f"TIMELINE_SINK must be one of none, memory, duckdb. Got: {sink!r}")

    return TimelineConfig(
        log_level=_get_env_str("TIMELINE_LOG_LEVEL", "INFO"),
        capture_traces=_get_env_bool("TIMELINE_CAPTURE_TRACES", True),
        trace_depth=_get_env_number("TIMELINE_TRACE_DEPTH", 25, int),
        sink=sink,
        duckdb_path=_get_env_str("TIMELINE_DUCKDB_PATH", "timeline_history.duckdb"),
    )
