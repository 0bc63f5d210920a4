"""Pre-update-password action endpoint.

``POST /check-password`` receives the identity provider's action event,
runs the breach-check pipeline and answers with the action envelope:

  SUCCESS                      password not found in breach data (or fail-open)
  FAILED password_compromised  password found; description includes the count
  ERROR  invalid_request       body is not a pre-update-password event (400)
  ERROR  invalid_credential    credential missing / wrong type / undecodable (400)
  ERROR  service_error         lookup failed and policy is fail-closed (503)

Shared resources come from ``app.state`` (set by the lifespan in
``pwngate.main``): ``lookup_client`` and ``failure_mode``. Readiness is
enforced by the router-level ``require_ready`` dependency.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from pwngate.checker.lookup import BreachLookupClient
from pwngate.checker.policy import FailureMode, check_password_event
from pwngate.models.action import build_action_response
from pwngate.utils.logger import clear_request_id, get_logger, set_request_id
from pwngate.utils.ulid import generate_ulid

logger = get_logger(__name__)

router = APIRouter(tags=["actions"])


@router.post("/check-password")
async def check_password(request: Request) -> JSONResponse:
    """Decide whether the password in this action event may be used.

    The body is parsed here rather than through a pydantic model so that a
    malformed envelope still gets an action-framework ERROR response instead
    of FastAPI's 422 validation body.
    """
    check_id = generate_ulid()
    # Read back by the unhandled-exception handler, which runs after the finally below.
    request.state.check_id = check_id
    set_request_id(check_id)
    try:
        lookup_client: BreachLookupClient = request.app.state.lookup_client
        failure_mode: FailureMode = request.app.state.failure_mode

        payload = _parse_json(await request.body())
        decision = await check_password_event(payload, lookup_client, failure_mode)

        logger.info(
            "action_response",
            outcome=decision.outcome.value,
            error_code=decision.error_code,
            lookup_failure=decision.lookup_failure,
        )
        return build_action_response(decision, check_id)
    finally:
        clear_request_id()


def _parse_json(body: bytes) -> Any:
    # Unparseable bodies become None, which the extractor rejects as invalid_request.
    if not body:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
