"""ASGI server-side session middleware.

The session cookie carries only an opaque token. All data lives in the
manager's store. Each request is wrapped as:

    skipper -> load_check -> handler -> save_check (at response start)

``save_check`` runs when the handler emits ``http.response.start``, so the
cookie and caching headers are written before any body bytes leave.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

from starlette.concurrency import run_in_threadpool
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from . import codec
from .context import ASGIRequestContext, SessionContext
from .data import Status
from .manager import SessionManager
from .registry import session_registry

logger = logging.getLogger(__name__)

Skipper = Callable[[HTTPConnection], bool]


def default_skipper(conn: HTTPConnection) -> bool:
    return False


class SessionHooks:
    """Load/save policy around a request.

    Subclass and override :meth:`load_check` or :meth:`save_check` to change
    where the token comes from or how it is sent back (e.g. a header
    instead of a cookie).

    Args:
        manager: The session manager (default: a new one with defaults).
        require_token: Commit a new session on every request that arrives
            without one, instead of only once something is stored.
    """

    def __init__(self, manager: SessionManager | None = None, *, require_token: bool = False) -> None:
        self.manager = manager or SessionManager()
        self.require_token = require_token

    def load_check(self, ctx: SessionContext) -> None:
        token = ctx.cookie(self.manager.cookie.name) or ""
        sd = self.manager.load(ctx, token)
        if self.require_token and not sd.token:
            self.manager.mark_modified(ctx)

    def save_check(self, ctx: SessionContext) -> None:
        status = self.manager.status(ctx)
        if status is Status.MODIFIED:
            token, expiry = self.manager.commit(ctx)
            self.manager.write_session_cookie(ctx, token, expiry)
        elif status is Status.DESTROYED:
            self.manager.write_session_cookie(ctx, "", None)


@dataclass
class SessionsConfig:
    """Everything one SessionMiddleware needs.

    ``register_types`` lists pydantic models to allow as session values.
    With ``cache`` set, the config is registered in the process registry
    under its cookie name when the middleware is built.
    """

    hooks: SessionHooks = field(default_factory=SessionHooks)
    skipper: Skipper = default_skipper
    register_types: Sequence[type] = ()
    cache: bool = False

    @property
    def manager(self) -> SessionManager:
        return self.hooks.manager

    @property
    def name(self) -> str:
        return self.manager.cookie.name

    def initialize(self) -> None:
        for cls in self.register_types:
            codec.register_type(cls)


def default_sessions_config() -> SessionsConfig:
    # Cached by default so handlers can find it with session_registry().get("session").
    return SessionsConfig(cache=True)


class SessionMiddleware:
    """ASGI middleware for server-side sessions.

    Several instances with different cookie names can wrap the same app;
    they share one request context and never see each other's data.

    Websocket connections get their session loaded but never saved. There
    is no response start to attach a cookie to, so treat the session as
    read-only inside websocket handlers.
    """

    def __init__(self, app: ASGIApp, config: SessionsConfig | None = None) -> None:
        self.app = app
        self.config = config if config is not None else default_sessions_config()
        self.config.initialize()
        if self.config.cache:
            session_registry().register_strict(self.config.name, self.config)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        if self.config.skipper(HTTPConnection(scope)):
            await self.app(scope, receive, send)
            return

        hooks = self.config.hooks
        ctx = ASGIRequestContext.from_scope(scope)
        try:
            await run_in_threadpool(hooks.load_check, ctx)
        except Exception as e:
            logger.error("Session %r: load failed: %s", self.config.name, e)
            raise

        if scope["type"] == "websocket":
            await self.app(scope, receive, send)
            return

        saved = False

        async def send_wrapper(message: Message) -> None:
            nonlocal saved
            if message["type"] == "http.response.start" and not saved:
                saved = True
                ctx.bind_response(message)
                try:
                    await run_in_threadpool(hooks.save_check, ctx)
                except Exception as e:
                    logger.error("Session %r: save failed: %s", self.config.name, e)
                    raise

            await send(message)

        await self.app(scope, receive, send_wrapper)
