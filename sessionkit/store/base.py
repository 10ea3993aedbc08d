"""Session store protocol."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    """Protocol for server-side session persistence.

    Implementations must be safe to call from many threads at once.
    Failures are reported as :class:`sessionkit.errors.StoreError`.
    """

    def find(self, token: str) -> tuple[bytes | None, bool]:
        """Return ``(payload, True)``, or ``(None, False)`` if missing or expired."""
        ...

    def commit(self, token: str, data: bytes, expiry: datetime) -> None:
        """Insert or overwrite the payload for ``token`` until ``expiry``."""
        ...

    def delete(self, token: str) -> None:
        """Remove ``token``. Missing tokens are not an error."""
        ...
