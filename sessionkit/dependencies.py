"""FastAPI dependency injection: request context and registered managers."""

from __future__ import annotations

from typing import Callable

from fastapi import Request

from .context import ASGIRequestContext
from .errors import MissingConfigError
from .manager import SessionManager
from .registry import session_registry


def get_session_context(request: Request) -> ASGIRequestContext:
    """Get the session context the middleware attached to this request."""
    return ASGIRequestContext.from_scope(request.scope)


def registered_manager(name: str = "session") -> Callable[[], SessionManager]:
    """Dependency factory resolving a manager from the registry by cookie name."""

    def _dependency() -> SessionManager:
        config = session_registry().get(name)
        if config is None:
            raise MissingConfigError(f"no session registered under {name!r}")
        return config.manager

    return _dependency
