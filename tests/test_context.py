"""Tests for the request contexts."""

from __future__ import annotations

from sessionkit.context import STATE_KEY, ASGIRequestContext, SessionContext, SimpleContext


def _scope(cookie: str = "") -> dict:
    headers = [(b"cookie", cookie.encode())] if cookie else []
    return {"type": "http", "method": "GET", "path": "/", "headers": headers, "query_string": b""}


def test_simple_context_satisfies_protocol():
    ctx = SimpleContext(cookies={"session": "tok"})
    assert isinstance(ctx, SessionContext)
    assert ctx.cookie("session") == "tok"
    assert ctx.cookie("other") is None
    ctx.set("k", 1)
    assert ctx.get("k") == 1
    assert ctx.get("missing") is None


def test_asgi_context_reads_cookies():
    ctx = ASGIRequestContext(_scope("session=abc; other=def"))
    assert ctx.cookie("session") == "abc"
    assert ctx.cookie("missing") is None


def test_asgi_context_is_shared_per_scope():
    scope = _scope()
    ctx = ASGIRequestContext.from_scope(scope)
    assert ASGIRequestContext.from_scope(scope) is ctx
    assert scope["state"][STATE_KEY] is ctx


def test_asgi_context_scratch_lives_in_state():
    scope = _scope()
    ctx = ASGIRequestContext.from_scope(scope)
    ctx.set("session.1", "data")
    assert scope["state"]["session.1"] == "data"


def test_bind_response_flushes_buffered_headers():
    ctx = ASGIRequestContext(_scope())
    ctx.response_headers.append("Set-Cookie", "a=1")
    ctx.response_headers.append("Vary", "Cookie")

    message = {"type": "http.response.start", "status": 200, "headers": [(b"vary", b"Cookie")]}
    ctx.bind_response(message)
    ctx.bind_response(message)

    assert message["headers"] == [(b"vary", b"Cookie"), (b"set-cookie", b"a=1")]
    ctx.response_headers.append("X-Extra", "1")
    assert (b"x-extra", b"1") in message["headers"]
