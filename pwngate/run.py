"""Programmatic uvicorn entry point for PwnGate.

Reads host and port from the loaded config (127.0.0.1:3000 by default) and
starts uvicorn with hardened connection limits.

Usage:
    python -m pwngate.run
    pwngate                    # via pyproject.toml [project.scripts]
"""

from __future__ import annotations

import uvicorn

from pwngate.config import load_config

# Max concurrent connections; uvicorn answers 503 beyond this.
# Matches POOL_MAX_CONNECTIONS so every in-flight check has a lookup slot.
UVICORN_LIMIT_CONCURRENCY: int = 100

# OS-level TCP connection backlog.
UVICORN_BACKLOG: int = 50

# Keep-alive timeout in seconds.
UVICORN_TIMEOUT_KEEP_ALIVE: int = 5


def main() -> None:
    """Start the PwnGate server.

    Raises:
        SystemExit: Propagated from load_config() on config errors.
    """
    config = load_config()

    uvicorn.run(
        "pwngate.main:app",
        host=config.server.host,
        port=config.server.port,
        limit_concurrency=UVICORN_LIMIT_CONCURRENCY,
        backlog=UVICORN_BACKLOG,
        timeout_keep_alive=UVICORN_TIMEOUT_KEEP_ALIVE,
    )


if __name__ == "__main__":
    main()
