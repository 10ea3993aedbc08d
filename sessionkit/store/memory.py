"""In-memory session store."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable

from ..data import utcnow

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_INTERVAL = timedelta(minutes=1)


class MemoryStore:
    """In-memory session store for development/testing and single-process apps.

    Sessions are lost on restart and not shared across processes. A
    background thread removes expired entries every ``cleanup_interval``;
    pass ``timedelta(0)`` to disable it (expired entries are then only
    hidden by :meth:`find`).
    """

    def __init__(
        self,
        cleanup_interval: timedelta = DEFAULT_CLEANUP_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._items: dict[str, tuple[bytes, datetime]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._stop = threading.Event()
        self._cleanup_thread: threading.Thread | None = None

        if cleanup_interval > timedelta(0):
            self._cleanup_thread = threading.Thread(
                target=self._run_cleanup,
                args=(cleanup_interval.total_seconds(),),
                name="sessionkit-memstore-cleanup",
                daemon=True,
            )
            self._cleanup_thread.start()
            logger.info("MemoryStore: cleanup every %ss", cleanup_interval.total_seconds())

    def find(self, token: str) -> tuple[bytes | None, bool]:
        with self._lock:
            entry = self._items.get(token)
        if entry is None:
            return None, False
        data, expiry = entry
        if self._clock() > expiry:
            return None, False
        return data, True

    def commit(self, token: str, data: bytes, expiry: datetime) -> None:
        with self._lock:
            self._items[token] = (data, expiry)

    def delete(self, token: str) -> None:
        with self._lock:
            self._items.pop(token, None)

    def delete_expired(self) -> int:
        """Remove every entry past its expiry and return how many were removed."""
        now = self._clock()
        # Scan a copy without the lock; only deletion needs it.
        snapshot = self._items.copy()
        expired = [t for t, (_, expiry) in snapshot.items() if now > expiry]
        if not expired:
            return 0

        removed = 0
        with self._lock:
            for token in expired:
                entry = self._items.get(token)
                # Skip entries re-committed since the scan.
                if entry is not None and now > entry[1]:
                    del self._items[token]
                    removed += 1
        if removed:
            logger.debug("MemoryStore: swept %d expired sessions", removed)
        return removed

    def stop_cleanup(self) -> None:
        """Stop the background sweeper. Safe to call more than once."""
        if self._cleanup_thread is None:
            return
        self._stop.set()
        self._cleanup_thread.join()
        self._cleanup_thread = None
        logger.info("MemoryStore: cleanup stopped")

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _run_cleanup(self, interval: float) -> None:
        while not self._stop.wait(interval):
            self.delete_expired()
