"""Session manager: load, mutate and commit per-request session data."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable

from . import codec
from .context import SessionContext
from .cookies import CookieOptions, write_session_cookie
from .data import SessionData, Status, utcnow
from .errors import NoSessionInContextError
from .store import MemoryStore, SessionStore
from .tokens import generate_token

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

DEFAULT_LIFETIME = timedelta(hours=24)

_context_key_lock = threading.Lock()
_context_key_id = 0


def _generate_context_key() -> str:
    global _context_key_id
    with _context_key_lock:
        _context_key_id += 1
        return f"session.{_context_key_id}"


def _short(token: str) -> str:
    return f"{token[:6]}..." if token else "<new>"


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


class SessionManager:
    """Configuration plus the operations on one kind of session.

    Create one per configured session and keep it for the life of the
    process; it is safe for concurrent use. Per-request state lives in a
    :class:`SessionData` held in the request context, so every operation
    except :meth:`load` requires ``load`` to have run first.

    Args:
        store: Where payloads are persisted (default: a new MemoryStore).
        idle_timeout: Maximum inactivity before expiry; zero disables it.
        lifetime: Absolute maximum age of a session from creation.
        cookie: Session cookie attributes.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        *,
        idle_timeout: timedelta = timedelta(0),
        lifetime: timedelta = DEFAULT_LIFETIME,
        cookie: CookieOptions | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store: SessionStore = store if store is not None else MemoryStore()
        self.idle_timeout = idle_timeout
        self.lifetime = lifetime
        self.cookie = cookie or CookieOptions()
        self._clock = clock
        self._context_key = _generate_context_key()

    @classmethod
    def from_settings(
        cls, settings: Settings, store: SessionStore | None = None
    ) -> SessionManager:
        return cls(
            store=store if store is not None else settings.build_store(),
            idle_timeout=settings.idle_timeout,
            lifetime=settings.lifetime,
            cookie=settings.cookie_options(),
        )

    @property
    def context_key(self) -> str:
        return self._context_key

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def load(self, ctx: SessionContext, token: str) -> SessionData:
        """Resolve the session for this request, reading the store at most once.

        An empty or unknown token yields a fresh, unsaved session. A payload
        that fails to decode raises SerializationError rather than being
        replaced, so corruption stays visible.
        """
        existing = ctx.get(self._context_key)
        if isinstance(existing, SessionData):
            return existing

        if not token:
            return self._fresh(ctx)

        raw, found = self.store.find(token)
        if not found:
            logger.debug("Session %s not found; starting a new one", _short(token))
            return self._fresh(ctx)

        sd = codec.decode(raw, token=token)
        # Force a re-commit so the store expiry moves forward.
        if self.idle_timeout > timedelta(0):
            sd.status = Status.MODIFIED

        ctx.set(self._context_key, sd)
        logger.debug("Session %s loaded", _short(token))
        return sd

    def commit(self, ctx: SessionContext) -> tuple[str, datetime]:
        """Persist the session and return its token and store expiry."""
        sd = self._data(ctx)
        with sd.guard:
            if not sd.token:
                sd.token = generate_token()

            raw = codec.encode(sd)

            expiry = sd.deadline
            if self.idle_timeout > timedelta(0):
                expiry = min(expiry, self._clock() + self.idle_timeout)

            self.store.commit(sd.token, raw, expiry)
            logger.debug("Session %s committed until %s", _short(sd.token), expiry.isoformat())
            return sd.token, expiry

    def destroy(self, ctx: SessionContext) -> None:
        """Delete the session from the store and mark it Destroyed.

        Later mutations in the same request start a brand-new session.
        """
        sd = self._data(ctx)
        with sd.guard:
            if sd.token:
                self.store.delete(sd.token)
            logger.debug("Session %s destroyed", _short(sd.token))

            sd.status = Status.DESTROYED
            sd.token = ""
            sd.deadline = self._clock() + self.lifetime
            sd.values.clear()

    def renew_token(self, ctx: SessionContext) -> None:
        """Move the session data to a new token and reset its lifetime.

        The old token is deleted from the store immediately; the new one is
        written on the next commit. Call this before any change of privilege
        level (login, logout, role change) to prevent session fixation.
        """
        sd = self._writable(ctx)
        with sd.guard:
            old = sd.token
            if old:
                self.store.delete(old)
            sd.token = generate_token()
            sd.deadline = self._clock() + self.lifetime
            sd.status = Status.MODIFIED
            logger.debug("Session %s renewed as %s", _short(old), _short(sd.token))

    def mark_modified(self, ctx: SessionContext) -> None:
        """Force the session to be committed at the end of the request."""
        sd = self._writable(ctx)
        with sd.guard:
            sd.status = Status.MODIFIED

    # ── Values ────────────────────────────────────────────────────────────

    def put(self, ctx: SessionContext, key: str, value: Any) -> None:
        sd = self._writable(ctx)
        with sd.guard:
            sd.values[key] = value
            sd.status = Status.MODIFIED

    def get(self, ctx: SessionContext, key: str, default: Any = None) -> Any:
        sd = self._data(ctx)
        with sd.guard:
            return sd.values.get(key, default)

    def pop(self, ctx: SessionContext, key: str, default: Any = None) -> Any:
        """One-time get: return the value and delete it from the session."""
        sd = self._data(ctx)
        with sd.guard:
            if key not in sd.values:
                return default
            sd.status = Status.MODIFIED
            return sd.values.pop(key)

    def remove(self, ctx: SessionContext, key: str) -> None:
        """Delete ``key``. A missing key is a no-op and leaves the status alone."""
        sd = self._data(ctx)
        with sd.guard:
            if key not in sd.values:
                return
            del sd.values[key]
            sd.status = Status.MODIFIED

    def clear(self, ctx: SessionContext) -> None:
        """Remove every value but keep the session and its token."""
        sd = self._data(ctx)
        with sd.guard:
            if not sd.values:
                return
            sd.values.clear()
            sd.status = Status.MODIFIED

    def exists(self, ctx: SessionContext, key: str) -> bool:
        sd = self._data(ctx)
        with sd.guard:
            return key in sd.values

    def keys(self, ctx: SessionContext) -> list[str]:
        sd = self._data(ctx)
        with sd.guard:
            return sorted(sd.values)

    def status(self, ctx: SessionContext) -> Status:
        sd = self._data(ctx)
        with sd.guard:
            return sd.status

    def token(self, ctx: SessionContext) -> str:
        sd = self._data(ctx)
        with sd.guard:
            return sd.token

    def deadline(self, ctx: SessionContext) -> datetime:
        sd = self._data(ctx)
        with sd.guard:
            return sd.deadline

    # ── Typed helpers ─────────────────────────────────────────────────────
    # The zero value is returned when the key is absent or holds another type.

    def get_string(self, ctx: SessionContext, key: str) -> str:
        v = self.get(ctx, key)
        return v if isinstance(v, str) else ""

    def get_int(self, ctx: SessionContext, key: str) -> int:
        v = self.get(ctx, key)
        return v if _is_int(v) else 0

    def get_bool(self, ctx: SessionContext, key: str) -> bool:
        v = self.get(ctx, key)
        return v if isinstance(v, bool) else False

    def get_float(self, ctx: SessionContext, key: str) -> float:
        v = self.get(ctx, key)
        return v if isinstance(v, float) else 0.0

    def get_bytes(self, ctx: SessionContext, key: str) -> bytes:
        v = self.get(ctx, key)
        return v if isinstance(v, bytes) else b""

    def get_timestamp(self, ctx: SessionContext, key: str) -> datetime | None:
        v = self.get(ctx, key)
        return v if isinstance(v, datetime) else None

    # Typed pops always mark the session Modified, even for a missing key.

    def pop_string(self, ctx: SessionContext, key: str) -> str:
        v = self._pop_any(ctx, key)
        return v if isinstance(v, str) else ""

    def pop_int(self, ctx: SessionContext, key: str) -> int:
        v = self._pop_any(ctx, key)
        return v if _is_int(v) else 0

    def pop_bool(self, ctx: SessionContext, key: str) -> bool:
        v = self._pop_any(ctx, key)
        return v if isinstance(v, bool) else False

    def pop_float(self, ctx: SessionContext, key: str) -> float:
        v = self._pop_any(ctx, key)
        return v if isinstance(v, float) else 0.0

    def pop_bytes(self, ctx: SessionContext, key: str) -> bytes:
        v = self._pop_any(ctx, key)
        return v if isinstance(v, bytes) else b""

    def pop_timestamp(self, ctx: SessionContext, key: str) -> datetime | None:
        v = self._pop_any(ctx, key)
        return v if isinstance(v, datetime) else None

    # ── Cookie ────────────────────────────────────────────────────────────

    def write_session_cookie(
        self, ctx: SessionContext, token: str, expiry: datetime | None
    ) -> None:
        """Add the session cookie to the response; ``expiry=None`` clears it."""
        write_session_cookie(ctx.response_headers, self.cookie, token, expiry, now=self._clock())

    # ── Internals ─────────────────────────────────────────────────────────

    def _fresh(self, ctx: SessionContext) -> SessionData:
        sd = SessionData.fresh(self.lifetime, now=self._clock())
        ctx.set(self._context_key, sd)
        return sd

    def _data(self, ctx: SessionContext) -> SessionData:
        sd = ctx.get(self._context_key)
        if not isinstance(sd, SessionData):
            raise NoSessionInContextError(
                f"no session data in context for {self.cookie.name!r}; was load() called?"
            )
        return sd

    def _writable(self, ctx: SessionContext) -> SessionData:
        """Like _data, but swaps a destroyed record for a fresh one."""
        sd = self._data(ctx)
        with sd.guard:
            if sd.status is not Status.DESTROYED:
                return sd
            current = ctx.get(self._context_key)
            if current is not sd:
                # Another thread already replaced the destroyed record.
                return current
            logger.debug("Session destroyed earlier in request; starting a new one")
            return self._fresh(ctx)

    def _pop_any(self, ctx: SessionContext, key: str) -> Any:
        sd = self._writable(ctx)
        with sd.guard:
            sd.status = Status.MODIFIED
            return sd.values.pop(key, None)
