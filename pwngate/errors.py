"""Exception hierarchy for the PwnGate check pipeline.

Two families, handled very differently by the decision policy:

  InputError:
      The caller sent something we cannot check (bad envelope, missing or
      wrong-type credential, undecodable encoding). Always reported back as
      an action ERROR with HTTP 400. Never retried.

  BreachLookupError:
      The range lookup could not produce a usable answer (transport failure,
      timeout, non-200 status, unparseable count). Mapped to ALLOW or ERROR
      by the configured failure mode (see ``pwngate.checker.policy``).

Messages never contain the candidate password, its decoded form, or the
withheld fingerprint suffix. The prefix may appear: it is what the remote
service already sees.
"""

from __future__ import annotations

from typing import Optional


class PwnGateError(Exception):
    """Base class for all PwnGate errors."""


# ─── Caller input ─────────────────────────────────────────────────────────────


class InputError(PwnGateError):
    """The inbound event cannot be checked. Maps to an HTTP 400 ERROR response."""

    error_code: str = "invalid_request"


class MalformedPayload(InputError):
    """Request body is not a JSON object, or is not a pre-update-password event."""

    error_code = "invalid_request"


class MissingCredential(InputError):
    """No password credential at ``event.user.updatingCredential``."""

    error_code = "invalid_credential"


class MalformedCredential(InputError):
    """Credential is present but its ``format`` is unknown or it does not decode."""

    error_code = "invalid_credential"


# ─── Breach lookup ────────────────────────────────────────────────────────────


class BreachLookupError(PwnGateError):
    """The range lookup failed. Outcome depends on the configured failure mode."""

    kind: str = "lookup_error"


class LookupUnavailable(BreachLookupError):
    """Transport-level failure (DNS, connection refused, protocol error)."""

    kind = "unavailable"


class LookupTimeout(BreachLookupError):
    """The lookup did not complete within the configured timeout."""

    kind = "timeout"


class LookupStatusError(BreachLookupError):
    """The range endpoint answered with a non-200 status."""

    kind = "bad_status"

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"Range endpoint returned HTTP {status_code}")


class RateLimited(LookupStatusError):
    """HTTP 429 from the range endpoint."""

    kind = "rate_limited"

    def __init__(self, retry_after: Optional[int] = None) -> None:
        self.retry_after = retry_after
        super().__init__(429, "Range endpoint is rate limiting requests")


class LookupDataError(BreachLookupError):
    """The range response could not be interpreted (e.g. non-numeric count)."""

    kind = "bad_data"
