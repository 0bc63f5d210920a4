"""Unit tests for pwngate/models/action.py and pwngate/models/decision.py.

Decision -> action envelope:
  ALLOW                    -> 200 {"actionStatus": "SUCCESS"}
  DENY                     -> 200 FAILED, password_compromised, count in text
  ERROR invalid_*          -> 400 ERROR
  ERROR service_error      -> 503 ERROR (+ Retry-After when rate limited)
  unhandled                -> 500 ERROR service_error
"""

from __future__ import annotations

import json

import pytest

from pwngate.models.action import (
    CHECK_ID_HEADER,
    action_body,
    build_action_response,
    build_unhandled_error_response,
    status_code_for,
)
from pwngate.models.decision import (
    INVALID_CREDENTIAL,
    INVALID_REQUEST,
    SERVICE_ERROR,
    Decision,
    Outcome,
)

CHECK_ID = "01HZX3Q4J8K9M2N5P6R7S8T9VW"


def _json(response) -> dict:
    return json.loads(response.body)


# ─── Decision constructors ────────────────────────────────────────────────────


class TestDecision:
    def test_allow(self) -> None:
        decision = Decision.allow()
        assert decision.outcome == Outcome.ALLOW
        assert decision.occurrence_count == 0
        assert decision.reason is None

    def test_deny_message_formats_count(self) -> None:
        decision = Decision.deny(3730471)
        assert decision.reason == "password_compromised"
        assert decision.occurrence_count == 3730471
        assert decision.message == (
            "This password has appeared in 3,730,471 data breaches. "
            "Please choose a different password."
        )

    def test_error(self) -> None:
        decision = Decision.error(INVALID_CREDENTIAL, "bad")
        assert decision.outcome == Outcome.ERROR
        assert decision.is_input_error

    def test_service_error_is_not_input_error(self) -> None:
        assert not Decision.error(SERVICE_ERROR, "down").is_input_error


# ─── Envelopes ────────────────────────────────────────────────────────────────


class TestActionEnvelope:
    def test_allow(self) -> None:
        response = build_action_response(Decision.allow(), CHECK_ID)
        assert response.status_code == 200
        assert _json(response) == {"actionStatus": "SUCCESS"}
        assert response.headers[CHECK_ID_HEADER] == CHECK_ID

    def test_fail_open_allow_looks_like_allow(self) -> None:
        decision = Decision.allow(lookup_failure="timeout")
        assert action_body(decision) == {"actionStatus": "SUCCESS"}
        assert status_code_for(decision) == 200

    def test_deny(self) -> None:
        response = build_action_response(Decision.deny(42), CHECK_ID)
        assert response.status_code == 200
        body = _json(response)
        assert body["actionStatus"] == "FAILED"
        assert body["failureReason"] == "password_compromised"
        assert "42" in body["failureDescription"]

    @pytest.mark.parametrize("code", [INVALID_REQUEST, INVALID_CREDENTIAL])
    def test_input_error(self, code: str) -> None:
        response = build_action_response(Decision.error(code, "nope"), CHECK_ID)
        assert response.status_code == 400
        assert _json(response) == {
            "actionStatus": "ERROR",
            "error": code,
            "errorDescription": "nope",
        }
        assert "Retry-After" not in response.headers

    def test_service_error(self) -> None:
        decision = Decision.error(SERVICE_ERROR, "down", lookup_failure="unavailable")
        response = build_action_response(decision, CHECK_ID)
        assert response.status_code == 503
        assert _json(response)["error"] == "service_error"
        assert "Retry-After" not in response.headers

    def test_rate_limited_sets_retry_after(self) -> None:
        decision = Decision.error(
            SERVICE_ERROR, "slow down", lookup_failure="rate_limited", retry_after=7
        )
        response = build_action_response(decision, CHECK_ID)
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "7"

    def test_lookup_failure_not_in_body(self) -> None:
        decision = Decision.error(SERVICE_ERROR, "down", lookup_failure="bad_status")
        assert "bad_status" not in json.dumps(action_body(decision))


class TestUnhandledError:
    def test_body_and_status(self) -> None:
        response = build_unhandled_error_response(CHECK_ID)
        assert response.status_code == 500
        assert _json(response) == {
            "actionStatus": "ERROR",
            "error": "service_error",
            "errorDescription": "An error occurred while validating the password",
        }
        assert response.headers[CHECK_ID_HEADER] == CHECK_ID

    def test_without_check_id(self) -> None:
        response = build_unhandled_error_response()
        assert CHECK_ID_HEADER not in response.headers
