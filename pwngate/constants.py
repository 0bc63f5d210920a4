"""Shared constants for PwnGate.

Protocol sizes, lookup defaults and inbound limits used across modules are
defined here. No magic numbers in other modules: import from here.
"""

# ─── k-anonymity split ────────────────────────────────────────────────────────

# SHA-1 hex digest length. Every fingerprint is exactly this many uppercase
# hex characters before it is split.
DIGEST_HEX_LENGTH: int = 40

# Characters of the digest disclosed to the range endpoint.
# 16^5 = 1,048,576 equivalence classes.
PREFIX_LENGTH: int = 5

# Characters withheld locally and matched against the range response.
SUFFIX_LENGTH: int = DIGEST_HEX_LENGTH - PREFIX_LENGTH  # 35

# ─── Breach lookup service ───────────────────────────────────────────────────

DEFAULT_LOOKUP_BASE_URL: str = "https://api.pwnedpasswords.com"

# Identifying client header sent on every range request.
DEFAULT_USER_AGENT: str = "PwnGate-Password-Breach-Checker"

# Total per-lookup timeout (seconds). Single-digit by contract.
DEFAULT_LOOKUP_TIMEOUT_S: float = 5.0
MAX_LOOKUP_TIMEOUT_S: float = 10.0

# Extra slack on top of the httpx timeout for the asyncio.wait_for safety net.
# httpx applies its timeout per phase (connect / read / write / pool), so the
# outer bound keeps the total wall time of one lookup finite.
LOOKUP_DEADLINE_GRACE_S: float = 0.5

# Largest occurrence count accepted from the range response (unsigned 64-bit).
MAX_OCCURRENCE_COUNT: int = 2**64 - 1

# Connection pool for the shared lookup client.
POOL_MAX_CONNECTIONS: int = 100
POOL_MAX_KEEPALIVE: int = 20
POOL_KEEPALIVE_EXPIRY: float = 30.0  # seconds

# ─── Inbound action requests ─────────────────────────────────────────────────

# Action event payloads are small JSON documents; anything larger than this
# is rejected with HTTP 413 before the body is parsed.
MAX_REQUEST_BODY_BYTES: int = 65_536  # 64 KB

# Expected ``actionType`` on the inbound event envelope (checked only when present).
PRE_UPDATE_PASSWORD_ACTION: str = "PRE_UPDATE_PASSWORD"

# Rolling window size for lookup latency reporting on /health.
LATENCY_WINDOW: int = 100
