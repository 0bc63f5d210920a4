"""Per-request value types for the breach-check pipeline.

All of these live for a single request only. ``Credential`` and
``Fingerprint`` override ``__repr__`` so an accidental log line or traceback
never carries the secret or the withheld suffix.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CredentialEncoding(str, Enum):
    """How the credential value arrived on the wire.

    The action framework tags base64-encoded values with ``format: "HASH"``.
    That name is misleading: the value is text-encoded, not a cryptographic
    hash, and is decoded before fingerprinting.
    """

    PLAIN = "PLAIN"
    BASE64 = "BASE64"


@dataclass(frozen=True, repr=False)
class Credential:
    """Decoded candidate password as raw bytes."""

    value: bytes
    encoding: CredentialEncoding = CredentialEncoding.PLAIN

    def __repr__(self) -> str:
        return f"Credential(encoding={self.encoding.value}, value=<redacted>)"


@dataclass(frozen=True, repr=False)
class Fingerprint:
    """SHA-1 digest split into the disclosed prefix and the withheld suffix.

    Invariant: ``prefix + suffix`` is the 40-char uppercase hex digest.
    Only ``prefix`` ever leaves the process.
    """

    prefix: str
    suffix: str

    @property
    def digest(self) -> str:
        return self.prefix + self.suffix

    def __repr__(self) -> str:
        return f"Fingerprint(prefix={self.prefix!r}, suffix=<withheld>)"


@dataclass(frozen=True)
class RangeEntry:
    """One ``SUFFIX:COUNT`` record from a range response.

    ``count`` is the raw count field. It is parsed only when the entry
    matches, so a garbage count on an unrelated line does not fail the lookup.
    """

    suffix: str
    count: str


@dataclass(frozen=True)
class Verdict:
    """Outcome of matching a suffix against one range response."""

    compromised: bool
    occurrence_count: int = 0

    def __post_init__(self) -> None:
        if self.occurrence_count < 0:
            raise ValueError("occurrence_count must be non-negative")
        if self.compromised != (self.occurrence_count > 0):
            raise ValueError("occurrence_count must be 0 exactly when not compromised")

    @classmethod
    def clean(cls) -> "Verdict":
        return cls(compromised=False, occurrence_count=0)
