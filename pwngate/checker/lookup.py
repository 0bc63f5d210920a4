"""Range lookup client for the Pwned Passwords k-anonymity API.

Only the 5-character fingerprint prefix is sent. The service answers with
every known suffix in that bucket, one ``SUFFIX:COUNT`` record per line,
and the match happens locally (see ``pwngate.checker.resolver``).

Key properties:
  - One shared ``httpx.AsyncClient`` per process, created at startup by
    ``create_http_client()`` and stored on ``app.state.http_client``.
    Never instantiated per request.
  - Exactly one GET per check. No retries here: a failed lookup is reported
    to the decision policy as a ``BreachLookupError``.
  - Bounded: httpx enforces the configured timeout per phase and an
    ``asyncio.wait_for`` deadline caps the whole call.
  - Cancellation (client disconnect, shutdown) propagates as
    ``asyncio.CancelledError`` and abandons the in-flight request.

Failure mapping:
  httpx.TimeoutException / deadline exceeded -> LookupTimeout
  other httpx.HTTPError (connect, protocol)   -> LookupUnavailable
  HTTP 429                                    -> RateLimited
  any other non-200 status                    -> LookupStatusError
  HTTP 200 with empty or garbage body         -> [] (not an error)
"""

from __future__ import annotations

import asyncio
import re
from typing import Optional

import httpx

from pwngate.config import LookupConfig
from pwngate.constants import (
    LOOKUP_DEADLINE_GRACE_S,
    POOL_KEEPALIVE_EXPIRY,
    POOL_MAX_CONNECTIONS,
    POOL_MAX_KEEPALIVE,
    PREFIX_LENGTH,
    SUFFIX_LENGTH,
)
from pwngate.errors import LookupStatusError, LookupTimeout, LookupUnavailable, RateLimited
from pwngate.models.credential import RangeEntry
from pwngate.utils.health import LookupLatencyTracker
from pwngate.utils.logger import PerformanceLogger, get_logger

logger = get_logger(__name__)

_PREFIX_RE = re.compile(rf"[0-9A-F]{{{PREFIX_LENGTH}}}")
_SUFFIX_RE = re.compile(rf"[0-9A-Fa-f]{{{SUFFIX_LENGTH}}}")


# ─── httpx.AsyncClient factory ────────────────────────────────────────────────


def create_http_client(config: LookupConfig) -> httpx.AsyncClient:
    """Create the shared httpx.AsyncClient used for range lookups.

    Created once at lifespan startup and closed at shutdown.

    Args:
        config: Immutable lookup settings (timeout is taken from here).

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(
        limits=httpx.Limits(
            max_connections=POOL_MAX_CONNECTIONS,
            max_keepalive_connections=POOL_MAX_KEEPALIVE,
            keepalive_expiry=POOL_KEEPALIVE_EXPIRY,
        ),
        timeout=httpx.Timeout(config.timeout_s),
        follow_redirects=False,
    )


# ─── Response parsing ─────────────────────────────────────────────────────────


def parse_range_body(text: str) -> list[RangeEntry]:
    """Parse a range response body into entries.

    Tolerates CRLF line endings and surrounding whitespace. Lines without a
    ``:`` separator or whose suffix is not 35 hex characters are skipped; the
    count field is kept raw and only validated if the entry matches.

    Args:
        text: Response body.

    Returns:
        Entries in response order, suffixes uppercased. Empty for an empty body.
    """
    entries: list[RangeEntry] = []
    for line in text.splitlines():
        suffix, sep, count = line.strip().partition(":")
        if not sep:
            continue
        suffix = suffix.strip()
        if not _SUFFIX_RE.fullmatch(suffix):
            continue
        entries.append(RangeEntry(suffix=suffix.upper(), count=count.strip()))
    return entries


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    # Only the delta-seconds form is honoured; HTTP-date values are ignored.
    if value is None:
        return None
    value = value.strip()
    if not value.isascii() or not value.isdigit():
        return None
    return int(value)


# ─── Lookup client ────────────────────────────────────────────────────────────


class BreachLookupClient:
    """Queries ``{base_url}/range/{prefix}`` and returns the candidate set.

    Holds no per-request state: one instance serves every request
    concurrently. The configuration is immutable.

    Args:
        config:          Lookup settings (base URL, timeout, identifying header).
        http_client:     Shared httpx.AsyncClient.
        latency_tracker: Optional rolling tracker fed with each lookup duration.
    """

    def __init__(
        self,
        config: LookupConfig,
        http_client: httpx.AsyncClient,
        latency_tracker: Optional[LookupLatencyTracker] = None,
    ) -> None:
        self.config = config
        self._http_client = http_client
        self._latency_tracker = latency_tracker
        self._headers = {"User-Agent": config.user_agent}
        if config.add_padding:
            self._headers["Add-Padding"] = "true"

    def range_url(self, prefix: str) -> str:
        return f"{self.config.base_url}/range/{prefix}"

    async def fetch_range(self, prefix: str) -> list[RangeEntry]:
        """Fetch every known suffix sharing *prefix*.

        Args:
            prefix: 5 uppercase hex characters.

        Returns:
            Parsed range entries; empty when the bucket has no entries.

        Raises:
            ValueError:        *prefix* is not 5 uppercase hex characters.
            LookupTimeout:     the lookup exceeded the configured timeout.
            LookupUnavailable: transport failure.
            RateLimited:       HTTP 429.
            LookupStatusError: any other non-200 status.
        """
        if not _PREFIX_RE.fullmatch(prefix):
            raise ValueError("prefix must be 5 uppercase hex characters")

        url = self.range_url(prefix)
        deadline = self.config.timeout_s + LOOKUP_DEADLINE_GRACE_S
        failed = True
        perf = PerformanceLogger(
            "range_lookup",
            logger=logger,
            slow_threshold_ms=self.config.timeout_s * 500,
            prefix=prefix,
        )
        try:
            with perf:
                try:
                    response = await asyncio.wait_for(
                        self._http_client.get(url, headers=self._headers),
                        timeout=deadline,
                    )
                except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
                    raise LookupTimeout(
                        f"Range lookup timed out after {self.config.timeout_s:g}s"
                    ) from exc
                except httpx.HTTPError as exc:
                    raise LookupUnavailable(
                        f"Range lookup failed: {type(exc).__name__}"
                    ) from exc

                if response.status_code == 429:
                    raise RateLimited(
                        retry_after=_parse_retry_after(response.headers.get("retry-after"))
                    )
                if response.status_code != 200:
                    raise LookupStatusError(response.status_code)

                entries = parse_range_body(response.text)
            failed = False
        finally:
            if self._latency_tracker is not None:
                self._latency_tracker.record(perf.duration_ms, failed=failed)

        logger.debug("range_lookup_entries", prefix=prefix, entries=len(entries))
        return entries
