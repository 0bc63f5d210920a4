"""Decision policy and the end-to-end check pipeline.

``check_password_event()`` is the only entry point the HTTP layer calls.

INVARIANTS:
  - Returns a ``Decision`` for every input error and every lookup failure;
    it never raises for either. Programming errors and cancellation still
    propagate.
  - One range lookup per call, no retries, nothing cached.
  - The password, its decoded bytes and the fingerprint suffix are never
    logged or placed in a Decision.

Lookup failure table (applied uniformly to every ``BreachLookupError``
subtype: unavailable, timeout, bad_status, rate_limited, bad_data):

  FailureMode.OPEN    -> ALLOW, failure logged at WARNING
  FailureMode.CLOSED  -> ERROR(service_error), HTTP 503

Only the message varies by subtype: a rate-limited lookup tells the caller
to retry later (with the service's Retry-After when it sent one).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pwngate.checker.extractor import extract_credential
from pwngate.checker.fingerprint import fingerprint
from pwngate.checker.lookup import BreachLookupClient
from pwngate.checker.resolver import resolve_verdict
from pwngate.errors import BreachLookupError, InputError, RateLimited
from pwngate.models.credential import Verdict
from pwngate.models.decision import SERVICE_ERROR, Decision
from pwngate.utils.logger import get_logger

logger = get_logger(__name__)

SERVICE_ERROR_MESSAGE = (
    "Unable to verify the password against known data breaches. Please try again later."
)


class FailureMode(str, Enum):
    """What a lookup failure turns into."""

    OPEN = "open"
    CLOSED = "closed"

    @classmethod
    def from_config(cls, value: str) -> "FailureMode":
        return cls(value.strip().lower())


# ─── Individual transitions ──────────────────────────────────────────────────


def decide_on_verdict(verdict: Verdict) -> Decision:
    """Compromised -> DENY with the breach count; clean -> ALLOW."""
    if verdict.compromised:
        return Decision.deny(verdict.occurrence_count)
    return Decision.allow()


def decide_on_input_error(exc: InputError) -> Decision:
    """Caller-input problem -> ERROR(invalid_request | invalid_credential)."""
    return Decision.error(exc.error_code, str(exc))


def decide_on_lookup_failure(exc: BreachLookupError, mode: FailureMode) -> Decision:
    """Apply the configured failure mode to a lookup failure."""
    if mode == FailureMode.OPEN:
        return Decision.allow(lookup_failure=exc.kind)

    if isinstance(exc, RateLimited):
        if exc.retry_after is not None:
            message = (
                "The breach lookup service is rate limiting requests. "
                f"Please try again in {exc.retry_after} seconds."
            )
        else:
            message = (
                "The breach lookup service is rate limiting requests. "
                "Please try again shortly."
            )
        return Decision.error(
            SERVICE_ERROR,
            message,
            lookup_failure=exc.kind,
            retry_after=exc.retry_after,
        )

    return Decision.error(SERVICE_ERROR, SERVICE_ERROR_MESSAGE, lookup_failure=exc.kind)


# ─── Pipeline ─────────────────────────────────────────────────────────────────


async def check_password_event(
    payload: Any,
    lookup_client: BreachLookupClient,
    failure_mode: FailureMode,
) -> Decision:
    """Run extract -> fingerprint -> lookup -> resolve -> decide for one event.

    Args:
        payload:       Parsed JSON body of the action request.
        lookup_client: Shared range lookup client.
        failure_mode:  Configured lookup failure policy.

    Returns:
        The Decision for this request.
    """
    try:
        credential = extract_credential(payload)
    except InputError as exc:
        logger.info(
            "password_check_rejected_input",
            error_code=exc.error_code,
            error_type=type(exc).__name__,
        )
        return decide_on_input_error(exc)

    fp = fingerprint(credential)
    del credential

    try:
        entries = await lookup_client.fetch_range(fp.prefix)
        verdict = resolve_verdict(fp.suffix, entries)
    except BreachLookupError as exc:
        decision = decide_on_lookup_failure(exc, failure_mode)
        logger.warning(
            "password_check_lookup_failed",
            prefix=fp.prefix,
            failure=exc.kind,
            error=str(exc),
            failure_mode=failure_mode.value,
            outcome=decision.outcome.value,
        )
        return decision

    decision = decide_on_verdict(verdict)
    logger.info(
        "password_check_completed",
        prefix=fp.prefix,
        outcome=decision.outcome.value,
        occurrence_count=decision.occurrence_count,
    )
    return decision
