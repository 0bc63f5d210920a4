"""Decision: the terminal output of the breach-check pipeline.

One ``Decision`` maps 1:1 to the action response sent back to the caller
(see ``pwngate.models.action.build_action_response``):

  ALLOW  -> {"actionStatus": "SUCCESS"}
  DENY   -> {"actionStatus": "FAILED", "failureReason": "password_compromised", ...}
  ERROR  -> {"actionStatus": "ERROR", "error": <error_code>, ...}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Failure reason reported on DENY decisions.
PASSWORD_COMPROMISED = "password_compromised"

# Error codes reported on ERROR decisions.
INVALID_REQUEST = "invalid_request"
INVALID_CREDENTIAL = "invalid_credential"
SERVICE_ERROR = "service_error"


class Outcome(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Decision:
    """Allow / deny / error result for one password-change request.

    Attributes:
        outcome:          ALLOW, DENY or ERROR.
        reason:           ``password_compromised`` on DENY, else None.
        occurrence_count: Breach count on DENY, else 0.
        error_code:       ``invalid_request`` / ``invalid_credential`` /
                          ``service_error`` on ERROR, else None.
        message:          Human-readable text for the caller. Never contains
                          the password.
        lookup_failure:   Failure kind when the range lookup failed
                          (e.g. ``"rate_limited"``). Set on fail-open ALLOW
                          and fail-closed ERROR decisions.
        retry_after:      Seconds the lookup service asked us to wait, when
                          a fail-closed ERROR was caused by rate limiting.
    """

    outcome: Outcome
    reason: Optional[str] = None
    occurrence_count: int = 0
    error_code: Optional[str] = None
    message: Optional[str] = None
    lookup_failure: Optional[str] = None
    retry_after: Optional[int] = None

    @classmethod
    def allow(cls, lookup_failure: Optional[str] = None) -> "Decision":
        return cls(outcome=Outcome.ALLOW, lookup_failure=lookup_failure)

    @classmethod
    def deny(cls, occurrence_count: int) -> "Decision":
        return cls(
            outcome=Outcome.DENY,
            reason=PASSWORD_COMPROMISED,
            occurrence_count=occurrence_count,
            message=(
                f"This password has appeared in {occurrence_count:,} data breaches. "
                "Please choose a different password."
            ),
        )

    @classmethod
    def error(
        cls,
        error_code: str,
        message: str,
        lookup_failure: Optional[str] = None,
        retry_after: Optional[int] = None,
    ) -> "Decision":
        return cls(
            outcome=Outcome.ERROR,
            error_code=error_code,
            message=message,
            lookup_failure=lookup_failure,
            retry_after=retry_after,
        )

    @property
    def is_input_error(self) -> bool:
        return self.outcome == Outcome.ERROR and self.error_code != SERVICE_ERROR
