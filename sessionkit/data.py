"""Per-request session record and its status."""

from __future__ import annotations

import enum
import threading
from datetime import datetime, timedelta, timezone
from typing import Any


class Status(enum.IntEnum):
    """State of the session data during one request cycle."""

    UNMODIFIED = 0
    MODIFIED = 1
    DESTROYED = 2


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionData:
    """Mutable session state for one request.

    ``token`` is empty until the first commit. ``guard`` serializes
    every mutation and consistent read made through the manager.
    """

    __slots__ = ("token", "deadline", "values", "status", "guard")

    def __init__(
        self,
        deadline: datetime,
        values: dict[str, Any] | None = None,
        token: str = "",
        status: Status = Status.UNMODIFIED,
    ) -> None:
        self.token = token
        self.deadline = deadline
        self.values: dict[str, Any] = values if values is not None else {}
        self.status = status
        self.guard = threading.Lock()

    @classmethod
    def fresh(cls, lifetime: timedelta, now: datetime | None = None) -> SessionData:
        return cls(deadline=(now or utcnow()) + lifetime)

    def __repr__(self) -> str:
        token = f"{self.token[:6]}..." if self.token else ""
        return (
            f"SessionData(token={token!r}, status={self.status.name}, "
            f"deadline={self.deadline.isoformat()}, keys={sorted(self.values)})"
        )
