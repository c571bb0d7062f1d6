"""ID and secret helpers."""

from __future__ import annotations

import secrets
import string
import uuid

_ALPHANUMERIC = string.ascii_letters + string.digits


def new_id(prefix: str | None = None) -> str:
    """Generate a random UUID4 string with optional prefix."""
    base = uuid.uuid4().hex
    return f"{prefix}_{base}" if prefix else base


def random_alphanumeric(length: int) -> str:
    """Return a cryptographically random alphanumeric string."""
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))
