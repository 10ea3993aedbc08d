"""Server-side HTTP sessions keyed by an opaque cookie token."""

from .codec import register_type
from .context import ASGIRequestContext, SessionContext, SimpleContext
from .cookies import CookieOptions
from .data import SessionData, Status
from .errors import (
    DuplicateKeyError,
    MissingConfigError,
    NoSessionInContextError,
    SerializationError,
    SessionError,
    StoreError,
    TokenGenerationError,
)
from .manager import SessionManager
from .middleware import SessionHooks, SessionMiddleware, SessionsConfig
from .registry import session_registry
from .store import DynamoDBStore, MemoryStore, SessionStore

__all__ = [
    "ASGIRequestContext",
    "CookieOptions",
    "DuplicateKeyError",
    "DynamoDBStore",
    "MemoryStore",
    "MissingConfigError",
    "NoSessionInContextError",
    "SerializationError",
    "SessionContext",
    "SessionData",
    "SessionError",
    "SessionHooks",
    "SessionManager",
    "SessionMiddleware",
    "SessionStore",
    "SessionsConfig",
    "SimpleContext",
    "Status",
    "StoreError",
    "TokenGenerationError",
    "register_type",
    "session_registry",
]
