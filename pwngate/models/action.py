"""Action-framework HTTP response builder for PwnGate decisions.

The identity provider invokes ``POST /check-password`` before a password
update and reads ``actionStatus`` from the JSON body:

  SUCCESS -> the update proceeds.
  FAILED  -> the update is refused; ``failureReason`` / ``failureDescription``
             are shown to the end user.
  ERROR   -> the action itself could not run; ``error`` / ``errorDescription``
             describe why.

HTTP status codes follow the same split as the decision taxonomy:
  200 for SUCCESS and FAILED, 400 for caller-input errors, 503 for a
  fail-closed lookup failure. ``Retry-After`` is passed through when the
  lookup service asked us to back off.

Every response carries ``X-PwnGate-Check-ID`` so the caller can correlate
it with the structured log entry.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi.responses import JSONResponse

from pwngate.models.decision import SERVICE_ERROR, Decision, Outcome

CHECK_ID_HEADER = "X-PwnGate-Check-ID"


def action_body(decision: Decision) -> dict[str, Any]:
    """Return the JSON body for *decision* in the action-framework format."""
    if decision.outcome == Outcome.ALLOW:
        return {"actionStatus": "SUCCESS"}

    if decision.outcome == Outcome.DENY:
        return {
            "actionStatus": "FAILED",
            "failureReason": decision.reason,
            "failureDescription": decision.message,
        }

    return {
        "actionStatus": "ERROR",
        "error": decision.error_code,
        "errorDescription": decision.message,
    }


def status_code_for(decision: Decision) -> int:
    if decision.outcome != Outcome.ERROR:
        return 200
    if decision.error_code == SERVICE_ERROR:
        return 503
    return 400


def build_action_response(decision: Decision, check_id: str) -> JSONResponse:
    """Build the HTTP response for *decision*.

    Args:
        decision: Terminal pipeline decision.
        check_id: ULID for this request (echoed in ``X-PwnGate-Check-ID``).

    Returns:
        JSONResponse with the action envelope and status code.
    """
    status_code = status_code_for(decision)
    response = JSONResponse(status_code=status_code, content=action_body(decision))
    response.headers[CHECK_ID_HEADER] = check_id
    if decision.retry_after is not None and status_code == 503:
        response.headers["Retry-After"] = str(decision.retry_after)
    return response


def build_unhandled_error_response(check_id: Optional[str] = None) -> JSONResponse:
    """HTTP 500 action ERROR for exceptions that escaped the pipeline."""
    response = JSONResponse(
        status_code=500,
        content={
            "actionStatus": "ERROR",
            "error": SERVICE_ERROR,
            "errorDescription": "An error occurred while validating the password",
        },
    )
    if check_id:
        response.headers[CHECK_ID_HEADER] = check_id
    return response
