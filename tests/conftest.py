"""Shared fixtures for the sessionkit test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest

from sessionkit.context import SimpleContext
from sessionkit.manager import SessionManager
from sessionkit.registry import reset_session_registry
from sessionkit.store import MemoryStore


class FakeClock:
    """Controllable replacement for utcnow()."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


# ── Clock & Store ─────────────────────────────────────────────────────────

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock) -> Generator[MemoryStore, None, None]:
    s = MemoryStore(cleanup_interval=timedelta(0), clock=clock)
    yield s
    s.stop_cleanup()


# ── Manager & Context ─────────────────────────────────────────────────────

@pytest.fixture
def manager(store, clock) -> SessionManager:
    return SessionManager(store=store, clock=clock)


@pytest.fixture
def make_ctx():
    """Factory for a fresh request context, optionally carrying cookies."""

    def _make(**cookies: str) -> SimpleContext:
        return SimpleContext(cookies=cookies)

    return _make


@pytest.fixture
def ctx(manager, make_ctx) -> SimpleContext:
    """A context on which ``manager.load`` has already run with no token."""
    c = make_ctx()
    manager.load(c, "")
    return c


@pytest.fixture(autouse=True)
def _clean_registry() -> Generator[None, None, None]:
    reset_session_registry()
    yield
    reset_session_registry()
