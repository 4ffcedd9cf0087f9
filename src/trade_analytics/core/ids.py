"""Canonical ID and timestamp factories.

All modules import from here instead of defining local _uuid()/_now() copies.

Timestamp Rule
--------------
Timestamps produced here are ``datetime`` with ``tzinfo=timezone.utc``.
Executions and bars supplied by callers are compared as given, so a
single stream must not mix naive and aware values.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Generate a new UUID v4 string.  Use for all internal entity IDs."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def content_hash(*parts: str, length: int = 16) -> str:
    """Generate a deterministic SHA256-based ID from content strings.

    Used to derive position IDs that are stable across re-runs of the
    same execution stream.  Concatenates all *parts* with ``':'`` before
    hashing.
    """
    raw = ":".join(parts)
    return hashlib.sha256(raw.encode()).hexdigest()[:length]
