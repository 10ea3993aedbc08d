"""Request context the session engine runs against.

The manager needs only four things from a web framework: a per-request
scratch map, read access to request cookies, and the response headers.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import Message, Scope

# Key in scope["state"] under which the shared ASGIRequestContext lives.
STATE_KEY = "sessionkit.context"


@runtime_checkable
class SessionContext(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def cookie(self, name: str) -> str | None: ...

    @property
    def response_headers(self) -> MutableHeaders: ...


class SimpleContext:
    """Framework-free context, handy for tests and non-HTTP callers."""

    def __init__(self, cookies: Mapping[str, str] | None = None) -> None:
        self.scratch: dict[str, Any] = {}
        self.cookies: dict[str, str] = dict(cookies or {})
        self._headers = MutableHeaders()

    def get(self, key: str) -> Any:
        return self.scratch.get(key)

    def set(self, key: str, value: Any) -> None:
        self.scratch[key] = value

    def cookie(self, name: str) -> str | None:
        return self.cookies.get(name)

    @property
    def response_headers(self) -> MutableHeaders:
        return self._headers


class ASGIRequestContext:
    """Context over an ASGI scope, shared by every session middleware of a request.

    Scratch values live in ``scope["state"]`` so handlers can reach them via
    ``request.state``. Headers written before the response starts are kept
    in a buffer and merged into the ``http.response.start`` message by
    :meth:`bind_response`.
    """

    def __init__(self, scope: Scope) -> None:
        self._conn = HTTPConnection(scope)
        self._state: dict[str, Any] = scope.setdefault("state", {})
        self._headers = MutableHeaders()
        self._message: Message | None = None

    @classmethod
    def from_scope(cls, scope: Scope) -> ASGIRequestContext:
        state = scope.setdefault("state", {})
        ctx = state.get(STATE_KEY)
        if ctx is None:
            ctx = state[STATE_KEY] = cls(scope)
        return ctx

    def get(self, key: str) -> Any:
        return self._state.get(key)

    def set(self, key: str, value: Any) -> None:
        self._state[key] = value

    def cookie(self, name: str) -> str | None:
        return self._conn.cookies.get(name)

    @property
    def response_headers(self) -> MutableHeaders:
        return self._headers

    def bind_response(self, message: Message) -> None:
        """Point ``response_headers`` at the headers of the starting response."""
        if self._message is message:
            return
        headers = MutableHeaders(scope=message)
        for key, value in self._headers.items():
            if key == "set-cookie" or value not in headers.getlist(key):
                headers.append(key, value)
        self._headers = headers
        self._message = message
