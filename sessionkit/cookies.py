"""Session cookie settings and Set-Cookie rendering."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator
from starlette.datastructures import MutableHeaders

from .data import utcnow

# RFC 6265 cookie-name: an RFC 2616 token.
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

_CLEAR_EXPIRES = datetime.fromtimestamp(1, tz=timezone.utc)


class CookieOptions(BaseModel):
    """Attributes of the session cookie.

    If an application runs two sessions, each must use its own ``name``.
    ``persist=False`` omits Expires/Max-Age so the browser drops the
    cookie when it closes. ``same_site=None`` leaves the attribute out.
    """

    model_config = ConfigDict(frozen=True)

    name: str = "session"
    domain: str = ""
    path: str = "/"
    http_only: bool = True
    secure: bool = False
    persist: bool = True
    same_site: Literal["lax", "strict", "none"] | None = "lax"

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        if not _TOKEN_RE.match(v):
            raise ValueError(f"invalid cookie name: {v!r}")
        return v


def _http_date(dt: datetime) -> str:
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def render_cookie(
    options: CookieOptions,
    token: str,
    expiry: datetime | None,
    now: datetime | None = None,
) -> str:
    parts = [f"{options.name}={token}"]
    if options.path:
        parts.append(f"Path={options.path}")
    if options.domain:
        parts.append(f"Domain={options.domain}")

    if expiry is None:
        parts.append(f"Expires={_http_date(_CLEAR_EXPIRES)}")
        parts.append("Max-Age=-1")
    elif options.persist:
        now = now or utcnow()
        # Both rounded up to the next whole second.
        expires = datetime.fromtimestamp(math.floor(expiry.timestamp()) + 1, tz=timezone.utc)
        max_age = math.ceil((expiry - now).total_seconds())
        parts.append(f"Expires={_http_date(expires)}")
        parts.append(f"Max-Age={max_age}")

    if options.http_only:
        parts.append("HttpOnly")
    if options.secure:
        parts.append("Secure")
    if options.same_site:
        parts.append(f"SameSite={options.same_site.capitalize()}")
    return "; ".join(parts)


def add_header_if_missing(headers: MutableHeaders, key: str, value: str) -> None:
    """Append ``key: value`` unless that exact value is already present."""
    if value not in headers.getlist(key):
        headers.append(key, value)


def write_session_cookie(
    headers: MutableHeaders,
    options: CookieOptions,
    token: str,
    expiry: datetime | None,
    now: datetime | None = None,
) -> None:
    """Emit the session cookie plus the headers that keep shared caches from storing it.

    ``expiry=None`` writes an already-expired cookie that clears the session.
    """
    headers.append("Set-Cookie", render_cookie(options, token, expiry, now))
    add_header_if_missing(headers, "Cache-Control", 'no-cache="Set-Cookie"')
    add_header_if_missing(headers, "Vary", "Cookie")
