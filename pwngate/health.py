"""Health endpoint for PwnGate.

  GET /health  503 before ``app.state.ready``, 200 with lookup metrics after.

The lookup service itself is not probed here: a health poll must not spend
the range API's rate limit. ``avg_lookup_ms`` / ``p99_lookup_ms`` /
``lookup_failures`` reflect real traffic instead.
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urlsplit

from fastapi import APIRouter, HTTPException, Request

from pwngate.config import Config
from pwngate.utils.health import LookupLatencyTracker

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """Primary health check endpoint.

    Response body (200)::

        {
          "status": "healthy",
          "failure_mode": "open" | "closed",
          "lookup_host": "api.pwnedpasswords.com",
          "lookup_timeout_s": 5.0,
          "avg_lookup_ms": 0.0,
          "p99_lookup_ms": 0.0,
          "lookups": 0,
          "lookup_failures": 0
        }

    Response body (503)::

        {"status": "starting"}
    """
    if not getattr(request.app.state, "ready", False):
        raise HTTPException(status_code=503, detail={"status": "starting"})

    config: Config = request.app.state.config
    tracker: Optional[LookupLatencyTracker] = getattr(
        request.app.state, "latency_tracker", None
    )

    return {
        "status": "healthy",
        "failure_mode": config.policy.on_lookup_failure,
        "lookup_host": urlsplit(config.lookup.base_url).hostname,
        "lookup_timeout_s": config.lookup.timeout_s,
        "avg_lookup_ms": round(tracker.avg_ms, 2) if tracker else 0.0,
        "p99_lookup_ms": round(tracker.p99_ms, 2) if tracker else 0.0,
        "lookups": tracker.count if tracker else 0,
        "lookup_failures": tracker.failures if tracker else 0,
    }
