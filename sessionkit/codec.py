"""Binary codec for session payloads.

A payload is UTF-8 JSON holding the session deadline and a map of tagged
values::

    {"v": 1, "deadline": "2026-01-01T00:00:00+00:00",
     "values": {"user": ["str", "alice"], "seen": ["datetime", "..."]}}

Every value is a ``[tag, payload]`` pair so that types survive the round
trip (``1`` vs ``1.0``, ``bytes`` vs ``str``, tuple vs list). Types
outside the built-in set must be registered once at process start with
:func:`register_type`; encoding an unregistered type fails.
"""

from __future__ import annotations

import base64
import json
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from pydantic import BaseModel

from .data import SessionData
from .errors import SerializationError

FORMAT_VERSION = 1


@dataclass(frozen=True)
class _Registration:
    name: str
    cls: type
    encoder: Callable[[Any], Any]
    decoder: Callable[[Any], Any]


_registry_lock = threading.Lock()
_by_type: dict[type, _Registration] = {}
_by_name: dict[str, _Registration] = {}


# ── Built-in carriers ─────────────────────────────────────────────────────

def _encode_pairs(value: dict) -> list:
    return [[_encode_value(k), _encode_value(v)] for k, v in value.items()]


def _decode_pairs(payload: Any) -> dict:
    return {_decode_value(k): _decode_value(v) for k, v in payload}


def _decode_bytes(payload: Any) -> bytes:
    if not isinstance(payload, str):
        raise TypeError(f"bytes payload must be a base64 string, got {type(payload).__name__}")
    return base64.b64decode(payload.encode("ascii"), validate=True)


_BUILTIN_ENCODERS: dict[type, tuple[str, Callable[[Any], Any]]] = {
    type(None): ("none", lambda v: None),
    bool: ("bool", lambda v: v),
    int: ("int", lambda v: v),
    float: ("float", lambda v: v),
    str: ("str", lambda v: v),
    bytes: ("bytes", lambda v: base64.b64encode(v).decode("ascii")),
    datetime: ("datetime", lambda v: v.isoformat()),
    date: ("date", lambda v: v.isoformat()),
    timedelta: ("timedelta", lambda v: [v.days, v.seconds, v.microseconds]),
    Decimal: ("decimal", str),
    list: ("list", lambda v: [_encode_value(i) for i in v]),
    tuple: ("tuple", lambda v: [_encode_value(i) for i in v]),
    set: ("set", lambda v: [_encode_value(i) for i in v]),
    frozenset: ("frozenset", lambda v: [_encode_value(i) for i in v]),
    dict: ("dict", _encode_pairs),
}

_BUILTIN_DECODERS: dict[str, Callable[[Any], Any]] = {
    "none": lambda p: None,
    "bool": bool,
    "int": int,
    "float": float,
    "str": str,
    "bytes": _decode_bytes,
    "datetime": datetime.fromisoformat,
    "date": date.fromisoformat,
    "timedelta": lambda p: timedelta(days=p[0], seconds=p[1], microseconds=p[2]),
    "decimal": Decimal,
    "list": lambda p: [_decode_value(i) for i in p],
    "tuple": lambda p: tuple(_decode_value(i) for i in p),
    "set": lambda p: {_decode_value(i) for i in p},
    "frozenset": lambda p: frozenset(_decode_value(i) for i in p),
    "dict": _decode_pairs,
}


# ── Registration ──────────────────────────────────────────────────────────

def register_type(
    cls: type,
    name: str | None = None,
    *,
    encoder: Callable[[Any], Any] | None = None,
    decoder: Callable[[Any], Any] | None = None,
) -> None:
    """Allow values of ``cls`` to be stored in sessions.

    Pydantic models need no encoder/decoder. Any other class must supply
    an ``encoder`` returning JSON-compatible data and a ``decoder`` that
    rebuilds the instance from it. ``name`` is the tag written to the
    payload and defaults to the qualified class name; it must stay stable
    across deployments sharing a store.
    """
    name = name or f"{cls.__module__}.{cls.__qualname__}"
    if name in _BUILTIN_DECODERS:
        raise ValueError(f"Type name {name!r} is reserved")

    if encoder is None and decoder is None and issubclass(cls, BaseModel):
        encoder = lambda v: v.model_dump(mode="json")  # noqa: E731
        decoder = cls.model_validate
    if encoder is None or decoder is None:
        raise ValueError(f"{cls.__name__} needs both an encoder and a decoder")

    reg = _Registration(name=name, cls=cls, encoder=encoder, decoder=decoder)
    with _registry_lock:
        existing = _by_name.get(name)
        if existing is not None and existing.cls is not cls:
            raise ValueError(
                f"Type name {name!r} already registered for {existing.cls.__name__}"
            )
        _by_type[cls] = reg
        _by_name[name] = reg


def unregister_type(cls: type) -> None:
    with _registry_lock:
        reg = _by_type.pop(cls, None)
        if reg is not None:
            _by_name.pop(reg.name, None)


def is_registered(cls: type) -> bool:
    return cls in _by_type or cls in _BUILTIN_ENCODERS


# ── Values ────────────────────────────────────────────────────────────────

def _encode_value(value: Any) -> list:
    cls = type(value)
    reg = _by_type.get(cls)
    if reg is not None:
        return [reg.name, reg.encoder(value)]
    builtin = _BUILTIN_ENCODERS.get(cls)
    if builtin is None:
        raise SerializationError(
            f"Type {cls.__module__}.{cls.__qualname__} is not registered for sessions"
        )
    tag, fn = builtin
    return [tag, fn(value)]


def _decode_value(item: Any) -> Any:
    if not isinstance(item, list) or len(item) != 2 or not isinstance(item[0], str):
        raise SerializationError(f"Malformed session value: {item!r}")
    tag, payload = item
    reg = _by_name.get(tag)
    if reg is not None:
        return reg.decoder(payload)
    fn = _BUILTIN_DECODERS.get(tag)
    if fn is None:
        raise SerializationError(f"Unknown session value type {tag!r}")
    return fn(payload)


# ── Payloads ──────────────────────────────────────────────────────────────

def encode(data: SessionData) -> bytes:
    """Serialize the deadline and values of ``data``."""
    try:
        doc = {
            "v": FORMAT_VERSION,
            "deadline": data.deadline.isoformat(),
            "values": {key: _encode_value(val) for key, val in data.values.items()},
        }
        return json.dumps(doc, separators=(",", ":")).encode("utf-8")
    except SerializationError:
        raise
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot encode session: {e}") from e


def decode(raw: bytes, token: str = "") -> SessionData:
    """Rebuild a :class:`SessionData` from bytes produced by :func:`encode`."""
    try:
        doc = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise SerializationError(f"Cannot decode session: {e}") from e

    if not isinstance(doc, dict) or doc.get("v") != FORMAT_VERSION:
        raise SerializationError("Unsupported session payload format")
    deadline = doc.get("deadline")
    values = doc.get("values")
    if not isinstance(deadline, str) or not isinstance(values, dict):
        raise SerializationError("Session payload is missing deadline or values")

    try:
        expires = datetime.fromisoformat(deadline)
    except ValueError as e:
        raise SerializationError(f"Cannot decode session deadline: {e}") from e
    if expires.tzinfo is None:
        raise SerializationError("Session deadline has no timezone")

    try:
        return SessionData(
            deadline=expires,
            values={key: _decode_value(item) for key, item in values.items()},
            token=token,
        )
    except SerializationError:
        raise
    except (TypeError, ValueError, KeyError, IndexError, AttributeError, InvalidOperation) as e:
        raise SerializationError(f"Cannot decode session: {e}") from e
