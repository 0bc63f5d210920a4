"""ULID generation for PwnGate check IDs.

Each action request gets a ``check_id``: a 26-character ULID used as
  - the ``X-PwnGate-Check-ID`` response header
  - the ``request_id`` field on every structured log entry for that request

Uses the ``python-ulid`` library; ULIDs are never hand-rolled here.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Return a new ULID as a 26-character uppercase Crockford Base32 string."""
    return str(ULID())
