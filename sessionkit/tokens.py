"""Session token generation."""

from __future__ import annotations

import base64
import secrets

from .errors import TokenGenerationError

TOKEN_BYTES = 32


def generate_token() -> str:
    """Return 32 random bytes as unpadded URL-safe base64 (43 characters)."""
    try:
        raw = secrets.token_bytes(TOKEN_BYTES)
    except OSError as e:
        raise TokenGenerationError(f"OS random source failed: {e}") from e
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
