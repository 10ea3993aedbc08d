"""Process-wide registry of configured sessions, keyed by cookie name.

Handlers that do not close over their session manager can look it up::

    config = session_registry().get("session")
    config.manager.put(ctx, "user", "alice")
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from .errors import DuplicateKeyError, MissingConfigError

if TYPE_CHECKING:
    from .middleware import SessionsConfig

logger = logging.getLogger(__name__)


class _ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class SessionRegistry:
    def __init__(self) -> None:
        self._instances: dict[str, SessionsConfig] = {}
        self._lock = _ReadWriteLock()

    def register(self, key: str, config: SessionsConfig | None) -> None:
        """Insert or overwrite ``key``. A missing config is ignored."""
        if config is None:
            return
        with self._lock.write():
            self._instances[key] = config
        logger.info("Session registry: registered %r", key)

    def register_strict(self, key: str, config: SessionsConfig | None) -> None:
        """Insert ``key``, refusing missing configs and existing keys."""
        if config is None:
            raise MissingConfigError(f"cannot register session {key!r}: config is missing")
        with self._lock.write():
            if key in self._instances:
                raise DuplicateKeyError(f"cannot register session {key!r}: key already registered")
            self._instances[key] = config
        logger.info("Session registry: registered %r", key)

    def get(self, key: str) -> SessionsConfig | None:
        with self._lock.read():
            return self._instances.get(key)

    def remove(self, key: str) -> None:
        with self._lock.write():
            self._instances.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock.read():
            return sorted(self._instances)

    def length(self) -> int:
        with self._lock.read():
            return len(self._instances)

    def __len__(self) -> int:
        return self.length()


_registry: SessionRegistry | None = None
_registry_lock = threading.Lock()


def session_registry() -> SessionRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = SessionRegistry()
    return _registry


def reset_session_registry() -> None:
    """For testing: drop every registration."""
    global _registry
    with _registry_lock:
        _registry = None
