"""Match the withheld suffix against a range response."""

from __future__ import annotations

import hmac
import re
from typing import Iterable

from pwngate.constants import MAX_OCCURRENCE_COUNT
from pwngate.errors import LookupDataError
from pwngate.models.credential import RangeEntry, Verdict

_COUNT_RE = re.compile(r"[0-9]+")
_MAX_COUNT_DIGITS = len(str(MAX_OCCURRENCE_COUNT))


def parse_count(raw: str) -> int:
    """Parse a range-record count as an unsigned 64-bit integer.

    Raises:
        LookupDataError: *raw* is not a plain decimal integer in [0, 2**64 - 1].
    """
    if not _COUNT_RE.fullmatch(raw):
        raise LookupDataError("Range record has a non-numeric occurrence count")
    digits = raw.lstrip("0")
    if len(digits) > _MAX_COUNT_DIGITS:
        raise LookupDataError("Range record occurrence count is out of range")
    count = int(digits or "0")
    if count > MAX_OCCURRENCE_COUNT:
        raise LookupDataError("Range record occurrence count is out of range")
    return count


def resolve_verdict(suffix: str, entries: Iterable[RangeEntry]) -> Verdict:
    """Return the verdict for *suffix* given the entries of its prefix bucket.

    The first entry whose suffix equals *suffix* decides. A matching entry
    with count 0 (a padding record) is treated as not found.

    Raises:
        LookupDataError: the matching entry's count cannot be parsed.
    """
    target = suffix.upper()
    for entry in entries:
        if hmac.compare_digest(entry.suffix, target):
            count = parse_count(entry.count)
            if count == 0:
                return Verdict.clean()
            return Verdict(compromised=True, occurrence_count=count)
    return Verdict.clean()
