"""Pytest configuration.

Adds the repo's `src/` directory to `sys.path` so tests can import modules like
`config` and `timeline.manager` without installing the project as a package.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    """Configure pytest before collecting/running tests."""
    src_dir = Path(__file__).resolve().parents[1] / "src"
    src_dir_str = str(src_dir)
    if src_dir_str not in sys.path:
        sys.path.insert(0, src_dir_str)


@pytest.fixture
def manager():
    """A manager private to the test, independent of the process-wide one."""
    from timeline import PubSubManager

    return PubSubManager()


@pytest.fixture(autouse=True)
def _fresh_global_manager(monkeypatch: pytest.MonkeyPatch):
    """Give every test its own process-wide manager.

    Entities built without an explicit manager record into the shared one, so
    history would otherwise leak between tests. `.env` loading is disabled so
    a developer's local settings cannot change test behaviour.
    """
    from timeline import PubSubManager, set_manager

    monkeypatch.setattr("config.dotenv.load_dotenv", lambda *args, **kwargs: False)
    previous = set_manager(PubSubManager())
    yield
    set_manager(previous)
