"""Exception hierarchy for the session engine."""

from __future__ import annotations


class SessionError(Exception):
    """Base class for every error raised by sessionkit."""


class StoreError(SessionError):
    """The session store failed to find, commit or delete a payload."""


class SerializationError(StoreError):
    """A session payload could not be encoded or decoded."""


class TokenGenerationError(SessionError):
    """The OS random source failed while minting a token."""


class NoSessionInContextError(SessionError, RuntimeError):
    """A manager operation ran before ``load`` for the current request.

    This is a programming error, not a runtime condition to recover from.
    """


class RegistryError(SessionError):
    """Misconfiguration of the named-manager registry."""


class DuplicateKeyError(RegistryError):
    pass


class MissingConfigError(RegistryError):
    pass
