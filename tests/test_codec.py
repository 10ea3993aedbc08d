"""Tests for the session payload codec."""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import BaseModel

from sessionkit import codec
from sessionkit.data import SessionData, Status
from sessionkit.errors import SerializationError

DEADLINE = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


class Profile(BaseModel):
    name: str
    roles: list[str] = []


class Point:
    def __init__(self, x: int, y: int) -> None:
        self.x, self.y = x, y

    def __eq__(self, other):
        return isinstance(other, Point) and (self.x, self.y) == (other.x, other.y)


class Unregistered:
    pass


@pytest.fixture
def registered_types():
    codec.register_type(Profile, "test.Profile")
    codec.register_type(
        Point,
        "test.Point",
        encoder=lambda p: [p.x, p.y],
        decoder=lambda v: Point(*v),
    )
    yield
    codec.unregister_type(Profile)
    codec.unregister_type(Point)


def _roundtrip(values: dict) -> SessionData:
    return codec.decode(codec.encode(SessionData(DEADLINE, values)), token="tok")


def test_builtin_values_keep_their_types():
    values = {
        "none": None,
        "flag": True,
        "count": 3,
        "ratio": 1.0,
        "name": "alice",
        "blob": b"\x00\xff",
        "seen": datetime(2026, 1, 2, 3, 4, 5, 6, tzinfo=timezone.utc),
        "day": date(2026, 1, 2),
        "wait": timedelta(minutes=90, microseconds=1),
        "price": Decimal("9.99"),
        "items": [1, "two", b"3"],
        "pair": (1, 2),
        "tags": {"a", "b"},
        "frozen": frozenset({1}),
        "nested": {"k": {1: "int key"}},
    }
    sd = _roundtrip(values)
    assert sd.values == values
    assert type(sd.values["ratio"]) is float
    assert type(sd.values["count"]) is int
    assert type(sd.values["pair"]) is tuple


def test_decode_restores_deadline_and_token():
    sd = _roundtrip({})
    assert sd.deadline == DEADLINE
    assert sd.token == "tok"
    assert sd.status is Status.UNMODIFIED


def test_registered_types_roundtrip(registered_types):
    sd = _roundtrip({"profile": Profile(name="alice", roles=["admin"]), "at": Point(1, 2)})
    assert sd.values["profile"] == Profile(name="alice", roles=["admin"])
    assert sd.values["at"] == Point(1, 2)


def test_unregistered_type_fails_at_encode():
    with pytest.raises(SerializationError, match="not registered"):
        codec.encode(SessionData(DEADLINE, {"x": Unregistered()}))


def test_unregistered_type_nested_in_list_fails():
    with pytest.raises(SerializationError):
        codec.encode(SessionData(DEADLINE, {"x": [Unregistered()]}))


def test_register_requires_encoder_for_plain_class():
    with pytest.raises(ValueError):
        codec.register_type(Unregistered)


def test_register_rejects_reserved_name():
    with pytest.raises(ValueError, match="reserved"):
        codec.register_type(Profile, "str")


def test_register_rejects_name_clash(registered_types):
    class Other(BaseModel):
        pass

    with pytest.raises(ValueError, match="already registered"):
        codec.register_type(Other, "test.Profile")


def test_register_is_idempotent(registered_types):
    codec.register_type(Profile, "test.Profile")
    assert codec.is_registered(Profile)


@pytest.mark.parametrize(
    "raw",
    [
        b"",
        b"\xff\xfe",
        b'{"v": 1, "deadline": "2026-03-02T12:00:00+00:00"',
        b"[]",
        b'{"v": 99, "deadline": "2026-03-02T12:00:00+00:00", "values": {}}',
        b'{"v": 1, "values": {}}',
        b'{"v": 1, "deadline": "not a date", "values": {}}',
        b'{"v": 1, "deadline": "2026-03-02T12:00:00+00:00", "values": {"a": "bare"}}',
        b'{"v": 1, "deadline": "2026-03-02T12:00:00+00:00", "values": {"a": ["mystery", 1]}}',
        b'{"v": 1, "deadline": "2026-03-02T12:00:00+00:00", "values": {"a": ["bytes", "!!"]}}',
        b'{"v": 1, "deadline": "2026-03-02T12:00:00+00:00", "values": {"a": ["bytes", 5]}}',
        b'{"v": 1, "deadline": "2026-03-02T12:00:00", "values": {}}',
    ],
)
def test_malformed_payloads_raise(raw):
    with pytest.raises(SerializationError):
        codec.decode(raw)


def test_payload_is_json():
    raw = codec.encode(SessionData(DEADLINE, {"user": "alice"}))
    doc = json.loads(raw)
    assert doc["values"] == {"user": ["str", "alice"]}
    assert doc["deadline"] == DEADLINE.isoformat()
