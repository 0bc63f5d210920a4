"""SHA-1 fingerprinting with the k-anonymity prefix/suffix split.

The range protocol is keyed by the unsalted SHA-1 of the password, so this
digest is a lookup key, not password storage.
"""

from __future__ import annotations

import hashlib

from pwngate.constants import PREFIX_LENGTH
from pwngate.models.credential import Credential, Fingerprint


def sha1_hex(data: bytes) -> str:
    """Return the 40-char uppercase SHA-1 hex digest of *data*."""
    return hashlib.sha1(data, usedforsecurity=False).hexdigest().upper()


def fingerprint(credential: Credential) -> Fingerprint:
    """Digest *credential* and split it into disclosed prefix and withheld suffix."""
    digest = sha1_hex(credential.value)
    return Fingerprint(prefix=digest[:PREFIX_LENGTH], suffix=digest[PREFIX_LENGTH:])
