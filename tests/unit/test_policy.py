"""Unit tests for pwngate/checker/policy.py.

Covers the decision table and the end-to-end pipeline with a stub lookup:
  - "password" + matching record -> DENY(password_compromised, 3730471)
  - unrelated records / empty range -> ALLOW
  - idempotence for the same credential and the same range response
  - input errors -> ERROR(invalid_request | invalid_credential), no lookup made
  - every lookup failure subtype follows the configured failure mode
  - rate limiting gets a distinct, retry-hinting message when fail-closed
  - only the prefix reaches the lookup; no decision carries the secret
"""

from __future__ import annotations

from typing import Any

import pytest

from pwngate.checker.policy import (
    FailureMode,
    check_password_event,
    decide_on_lookup_failure,
    decide_on_verdict,
)
from pwngate.errors import (
    BreachLookupError,
    LookupDataError,
    LookupStatusError,
    LookupTimeout,
    LookupUnavailable,
    RateLimited,
)
from pwngate.models.credential import RangeEntry, Verdict
from pwngate.models.decision import Decision, Outcome

PASSWORD_SUFFIX = "1E4C9B93F3F0682250B6CF8331B7EE68FD8"
UNRELATED = [
    RangeEntry("0018A45C4D1DEF81644B54AB7F969B88D65", "1"),
    RangeEntry("00D4F6E8FA6EECAD2A3AA415EEC418D38EC", "2"),
]

# ─── Helpers ──────────────────────────────────────────────────────────────────


class _StubLookup:
    """Stands in for BreachLookupClient; records the prefixes it was asked for."""

    def __init__(
        self,
        entries: list[RangeEntry] | None = None,
        error: BreachLookupError | None = None,
    ) -> None:
        self.entries = entries or []
        self.error = error
        self.prefixes: list[str] = []

    async def fetch_range(self, prefix: str) -> list[RangeEntry]:
        self.prefixes.append(prefix)
        if self.error is not None:
            raise self.error
        return list(self.entries)


def _event(value: str = "password", fmt: str = "PLAIN") -> dict:
    return {
        "actionType": "PRE_UPDATE_PASSWORD",
        "event": {
            "user": {
                "id": "u-42",
                "updatingCredential": {"type": "PASSWORD", "format": fmt, "value": value},
            }
        },
    }


async def _check(
    payload: Any,
    lookup: _StubLookup,
    mode: FailureMode = FailureMode.OPEN,
) -> Decision:
    return await check_password_event(payload, lookup, mode)  # type: ignore[arg-type]


# ─── Verdict mapping ──────────────────────────────────────────────────────────


class TestVerdictDecisions:
    @pytest.mark.asyncio
    async def test_compromised_password_is_denied(self) -> None:
        lookup = _StubLookup([*UNRELATED, RangeEntry(PASSWORD_SUFFIX, "3730471")])
        decision = await _check(_event("password"), lookup)
        assert decision.outcome == Outcome.DENY
        assert decision.reason == "password_compromised"
        assert decision.occurrence_count == 3730471
        assert "3,730,471" in (decision.message or "")

    @pytest.mark.asyncio
    async def test_base64_credential_is_denied(self) -> None:
        lookup = _StubLookup([RangeEntry(PASSWORD_SUFFIX, "3730471")])
        decision = await _check(_event("cGFzc3dvcmQ=", fmt="HASH"), lookup)
        assert decision.outcome == Outcome.DENY
        assert decision.occurrence_count == 3730471

    @pytest.mark.asyncio
    async def test_unrelated_entries_allow(self) -> None:
        decision = await _check(_event("password"), _StubLookup(UNRELATED))
        assert decision == Decision.allow()

    @pytest.mark.asyncio
    async def test_empty_range_allows(self) -> None:
        decision = await _check(_event("password"), _StubLookup([]))
        assert decision.outcome == Outcome.ALLOW
        assert decision.occurrence_count == 0
        assert decision.lookup_failure is None

    @pytest.mark.asyncio
    async def test_idempotent(self) -> None:
        lookup = _StubLookup([RangeEntry(PASSWORD_SUFFIX, "3730471")])
        first = await _check(_event("password"), lookup)
        second = await _check(_event("password"), lookup)
        assert first == second

    def test_decide_on_verdict(self) -> None:
        assert decide_on_verdict(Verdict(True, 9)).outcome == Outcome.DENY
        assert decide_on_verdict(Verdict.clean()).outcome == Outcome.ALLOW


# ─── k-anonymity ──────────────────────────────────────────────────────────────


class TestDisclosure:
    @pytest.mark.asyncio
    async def test_only_prefix_is_looked_up(self) -> None:
        lookup = _StubLookup()
        await _check(_event("password"), lookup)
        assert lookup.prefixes == ["5BAA6"]

    @pytest.mark.asyncio
    async def test_decision_never_contains_secret(self) -> None:
        lookup = _StubLookup([RangeEntry(PASSWORD_SUFFIX, "3730471")])
        decision = await _check(_event("password"), lookup)
        assert PASSWORD_SUFFIX not in repr(decision)
        assert "5BAA6" + PASSWORD_SUFFIX not in repr(decision)


# ─── Input errors ─────────────────────────────────────────────────────────────


class TestInputErrors:
    @pytest.mark.asyncio
    async def test_missing_credential_is_invalid_credential(self) -> None:
        lookup = _StubLookup()
        decision = await _check({"event": {"user": {"id": "u-42"}}}, lookup)
        assert decision.outcome == Outcome.ERROR
        assert decision.error_code == "invalid_credential"
        assert decision.is_input_error
        assert lookup.prefixes == []

    @pytest.mark.asyncio
    async def test_invalid_base64_is_invalid_credential(self) -> None:
        lookup = _StubLookup([RangeEntry(PASSWORD_SUFFIX, "3730471")])
        decision = await _check(_event("%%%not-base64%%%", fmt="HASH"), lookup)
        assert decision.outcome == Outcome.ERROR
        assert decision.error_code == "invalid_credential"
        assert lookup.prefixes == []

    @pytest.mark.asyncio
    async def test_non_object_payload_is_invalid_request(self) -> None:
        decision = await _check(["not", "an", "object"], _StubLookup())
        assert decision.error_code == "invalid_request"

    @pytest.mark.asyncio
    async def test_input_errors_ignore_failure_mode(self) -> None:
        open_decision = await _check({}, _StubLookup(), FailureMode.OPEN)
        closed_decision = await _check({}, _StubLookup(), FailureMode.CLOSED)
        assert open_decision == closed_decision
        assert open_decision.outcome == Outcome.ERROR


# ─── Lookup failures ──────────────────────────────────────────────────────────

_FAILURES = [
    LookupUnavailable("connect failed"),
    LookupTimeout("timed out"),
    LookupStatusError(503),
    RateLimited(retry_after=None),
    RateLimited(retry_after=12),
]


class TestFailOpen:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", _FAILURES, ids=lambda e: e.kind)
    async def test_lookup_failure_allows(self, error: BreachLookupError) -> None:
        decision = await _check(_event(), _StubLookup(error=error), FailureMode.OPEN)
        assert decision.outcome == Outcome.ALLOW
        assert decision.lookup_failure == error.kind

    @pytest.mark.asyncio
    async def test_unparseable_count_allows(self) -> None:
        lookup = _StubLookup([RangeEntry(PASSWORD_SUFFIX, "NaN")])
        decision = await _check(_event(), lookup, FailureMode.OPEN)
        assert decision.outcome == Outcome.ALLOW
        assert decision.lookup_failure == "bad_data"

    @pytest.mark.asyncio
    async def test_oversized_count_allows(self) -> None:
        lookup = _StubLookup([RangeEntry(PASSWORD_SUFFIX, "9" * 5000)])
        decision = await _check(_event(), lookup, FailureMode.OPEN)
        assert decision.outcome == Outcome.ALLOW
        assert decision.lookup_failure == "bad_data"


class TestFailClosed:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", _FAILURES, ids=lambda e: e.kind)
    async def test_lookup_failure_is_service_error(self, error: BreachLookupError) -> None:
        decision = await _check(_event(), _StubLookup(error=error), FailureMode.CLOSED)
        assert decision.outcome == Outcome.ERROR
        assert decision.error_code == "service_error"
        assert decision.lookup_failure == error.kind
        assert not decision.is_input_error

    @pytest.mark.asyncio
    async def test_unparseable_count_is_service_error(self) -> None:
        lookup = _StubLookup([RangeEntry(PASSWORD_SUFFIX, "-3")])
        decision = await _check(_event(), lookup, FailureMode.CLOSED)
        assert decision.error_code == "service_error"
        assert decision.lookup_failure == "bad_data"

    @pytest.mark.asyncio
    async def test_oversized_count_is_service_error(self) -> None:
        lookup = _StubLookup([RangeEntry(PASSWORD_SUFFIX, "9" * 5000)])
        decision = await _check(_event(), lookup, FailureMode.CLOSED)
        assert decision.outcome == Outcome.ERROR
        assert decision.error_code == "service_error"
        assert decision.lookup_failure == "bad_data"

    def test_rate_limited_message_hints_retry(self) -> None:
        generic = decide_on_lookup_failure(LookupTimeout("t"), FailureMode.CLOSED)
        limited = decide_on_lookup_failure(RateLimited(), FailureMode.CLOSED)
        assert limited.message != generic.message
        assert "rate limiting" in (limited.message or "")
        assert "try again" in (limited.message or "")

    def test_rate_limited_retry_after_carried(self) -> None:
        decision = decide_on_lookup_failure(RateLimited(retry_after=12), FailureMode.CLOSED)
        assert decision.retry_after == 12
        assert "12 seconds" in (decision.message or "")

    def test_data_error_uses_generic_message(self) -> None:
        decision = decide_on_lookup_failure(LookupDataError("bad"), FailureMode.CLOSED)
        assert decision.retry_after is None
        assert "try again later" in (decision.message or "")


class TestFailureMode:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("open", FailureMode.OPEN), ("CLOSED", FailureMode.CLOSED), (" closed ", FailureMode.CLOSED)],
    )
    def test_from_config(self, value: str, expected: FailureMode) -> None:
        assert FailureMode.from_config(value) == expected

    def test_from_config_rejects_unknown(self) -> None:
        with pytest.raises(ValueError):
            FailureMode.from_config("maybe")
