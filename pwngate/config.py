"""Config loading for PwnGate.

Reads `.pwngate/config.yaml` (or `~/.pwngate/config.yaml`).
Raises SystemExit on parse errors, a missing `version` field or invalid values.
If no config file is found, returns default values (safe to run without config).

Config search order:
  1. `config_path` argument (if provided, for testing or explicit override)
  2. PWNGATE_CONFIG environment variable (if set)
  3. `.pwngate/config.yaml` (working directory, for development)
  4. `~/.pwngate/config.yaml` (home directory, for production deployments)

Environment variable overrides:
  PWNGATE_PORT          overrides server.port
  PWNGATE_FAILURE_MODE  overrides policy.on_lookup_failure ("open" | "closed")
  PWNGATE_CONFIG        sets an explicit config file path to try first

Example::

    version: 1
    server:
      host: 0.0.0.0
      port: 3000
    lookup:
      base_url: https://api.pwnedpasswords.com
      timeout_s: 5
      user_agent: Acme-Password-Breach-Checker
      add_padding: true
    policy:
      on_lookup_failure: closed
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import NoReturn, Optional

import yaml

from pwngate.constants import (
    DEFAULT_LOOKUP_BASE_URL,
    DEFAULT_LOOKUP_TIMEOUT_S,
    DEFAULT_USER_AGENT,
    MAX_LOOKUP_TIMEOUT_S,
)
from pwngate.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_CONFIG_VERSION = 1

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

# ─── Validation sets ─────────────────────────────────────────────────────────

# Valid values for policy.on_lookup_failure
VALID_FAILURE_MODES: frozenset[str] = frozenset({"open", "closed"})

DEFAULT_CONFIG_PATHS = [
    ".pwngate/config.yaml",
    os.path.expanduser("~/.pwngate/config.yaml"),
]


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LookupConfig:
    """Breach lookup service settings.

    Process-wide and immutable: built once at startup and injected into the
    shared HTTP client and ``BreachLookupClient``.

    base_url:    Range API root; requests go to ``{base_url}/range/{prefix}``.
    timeout_s:   Total per-lookup timeout in seconds, 0 < timeout_s <= 10.
    user_agent:  Identifying ``User-Agent`` header sent on every request.
    add_padding: Send ``Add-Padding: true`` so response size does not reveal
                 the prefix bucket population.
    """

    base_url: str = DEFAULT_LOOKUP_BASE_URL
    timeout_s: float = DEFAULT_LOOKUP_TIMEOUT_S
    user_agent: str = DEFAULT_USER_AGENT
    add_padding: bool = False


@dataclass
class PolicyConfig:
    """Decision policy settings.

    on_lookup_failure: "open"   -> lookup failures ALLOW the password (logged)
                       "closed" -> lookup failures return an ERROR response
    """

    on_lookup_failure: str = "open"


@dataclass
class ServerConfig:
    """HTTP server binding configuration."""

    host: str = "127.0.0.1"
    port: int = 3000


@dataclass
class Config:
    """Root configuration object populated from .pwngate/config.yaml.

    All fields have safe defaults: PwnGate can start without any config file.
    """

    version: int = SUPPORTED_CONFIG_VERSION
    server: ServerConfig = field(default_factory=ServerConfig)
    lookup: LookupConfig = field(default_factory=LookupConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    path: Optional[str] = None  # Path to the loaded config file

    @classmethod
    def defaults(cls) -> "Config":
        """Return a fully-default Config (no file required)."""
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Args:
            raw:  Parsed YAML dict (must already be validated for version field).
            path: Path to the config file (stored in Config.path).

        Returns:
            Config with all fields populated from raw + defaults for missing fields.

        Raises:
            SystemExit(1): On an invalid failure mode, timeout or port.
        """
        # ── Lookup ────────────────────────────────────────────────────────────
        lookup_raw = _section(raw, "lookup")
        timeout_s = lookup_raw.get("timeout_s", DEFAULT_LOOKUP_TIMEOUT_S)
        _validate_timeout(timeout_s, source="lookup.timeout_s")
        lookup = LookupConfig(
            base_url=str(lookup_raw.get("base_url", DEFAULT_LOOKUP_BASE_URL)).rstrip("/"),
            timeout_s=float(timeout_s),
            user_agent=str(lookup_raw.get("user_agent", DEFAULT_USER_AGENT)),
            add_padding=bool(lookup_raw.get("add_padding", False)),
        )

        # ── Policy ────────────────────────────────────────────────────────────
        policy_raw = _section(raw, "policy")
        failure_mode = str(policy_raw.get("on_lookup_failure", "open")).lower()
        _validate_failure_mode(failure_mode, source="policy.on_lookup_failure")
        policy = PolicyConfig(on_lookup_failure=failure_mode)

        # ── Server ────────────────────────────────────────────────────────────
        server_raw = _section(raw, "server")
        port = server_raw.get("port", 3000)
        _validate_port(port, source="server.port")
        server = ServerConfig(
            host=str(server_raw.get("host", "127.0.0.1")),
            port=port,
        )

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            server=server,
            lookup=lookup,
            policy=policy,
            path=path,
        )


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate PwnGate configuration.

    Search order:
      1. ``config_path`` argument
      2. ``PWNGATE_CONFIG`` environment variable
      3. ``.pwngate/config.yaml``
      4. ``~/.pwngate/config.yaml``

    If no file is found at any of these paths, returns default Config (not an error).
    If a file is found but invalid, writes error to stderr and raises SystemExit(1).

    Environment overrides (``PWNGATE_PORT``, ``PWNGATE_FAILURE_MODE``) are
    applied afterwards, whether or not a file was found.

    Raises:
        SystemExit(1): On YAML parse error, missing or unsupported ``version``,
                       invalid values, or invalid env overrides.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("PWNGATE_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    # ── No config file found ─────────────────────────────────────────────────
    if found_path is None:
        logger.info("No config file found, using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        _log_policy(config)
        return config

    # ── Parse config file ─────────────────────────────────────────────────────
    logger.info("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _config_error(
            f"Failed to parse {found_path}: {exc}\n"
            "PwnGate refuses to start with an invalid config. "
            "Check the YAML syntax and try again."
        )
    except OSError as exc:
        _config_error(f"Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _config_error(
                f"{found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _config_error(
            f"{found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    # ── Version validation ────────────────────────────────────────────────────
    version = raw.get("version")
    if version is None:
        _config_error(
            f"{found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )

    if version not in SUPPORTED_VERSIONS:
        _config_error(
            f"Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)

    if config.server.host == "0.0.0.0":
        logger.warning(
            "PwnGate is configured to bind on 0.0.0.0 (all interfaces). "
            "Make sure only the identity provider can reach the action endpoint."
        )

    if not config.lookup.base_url.startswith("https://"):
        logger.warning(
            "Lookup base_url is not HTTPS; fingerprint prefixes will travel in cleartext",
            base_url=config.lookup.base_url,
        )

    logger.info(
        "Config loaded",
        path=found_path,
        version=config.version,
        lookup_base_url=config.lookup.base_url,
    )
    _log_policy(config)
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Handles:
      PWNGATE_PORT          integer port
      PWNGATE_FAILURE_MODE  "open" | "closed"

    Raises:
        SystemExit(1): If an override is set but invalid.
    """
    env_port = os.environ.get("PWNGATE_PORT")
    if env_port is not None:
        try:
            port = int(env_port)
        except ValueError:
            _config_error(
                f"PWNGATE_PORT environment variable is not a valid integer: '{env_port}'"
            )
        _validate_port(port, source="PWNGATE_PORT")
        config.server.port = port

    env_mode = os.environ.get("PWNGATE_FAILURE_MODE")
    if env_mode is not None:
        mode = env_mode.strip().lower()
        _validate_failure_mode(mode, source="PWNGATE_FAILURE_MODE")
        config.policy.on_lookup_failure = mode


def _log_policy(config: Config) -> None:
    # Failure mode is a deployment decision; always state it at startup.
    logger.info(
        "Lookup failure policy",
        on_lookup_failure=config.policy.on_lookup_failure,
        timeout_s=config.lookup.timeout_s,
    )


def _section(raw: dict, name: str) -> dict:
    section = raw.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        _config_error(
            f"Invalid '{name}' section: expected a mapping, got {type(section).__name__}."
        )
    return section


def _validate_port(port: object, source: str) -> None:
    if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
        _config_error(f"Invalid {source}: {port!r}. Must be an integer in 1-65535.")


def _validate_failure_mode(mode: str, source: str) -> None:
    if mode not in VALID_FAILURE_MODES:
        _config_error(
            f"Invalid {source}: '{mode}'. "
            f"Supported values: {sorted(VALID_FAILURE_MODES)}."
        )


def _validate_timeout(value: object, source: str) -> None:
    if (
        not isinstance(value, (int, float))
        or isinstance(value, bool)
        or not 0 < value <= MAX_LOOKUP_TIMEOUT_S
    ):
        _config_error(
            f"Invalid {source}: {value!r}. "
            f"Must be a number of seconds in (0, {MAX_LOOKUP_TIMEOUT_S:g}]."
        )


def _config_error(message: str) -> NoReturn:
    print(f"CONFIG ERROR: {message}", file=sys.stderr)
    raise SystemExit(1)
