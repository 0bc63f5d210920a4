"""Root test configuration for PwnGate.

Clears every PWNGATE_* environment override so a developer's shell (or a CI
runner) cannot change config defaults under the test suite. Tests that
exercise the overrides set them explicitly with monkeypatch.
"""

import pytest

_PWNGATE_ENV_VARS = ("PWNGATE_CONFIG", "PWNGATE_PORT", "PWNGATE_FAILURE_MODE")


@pytest.fixture(autouse=True)
def clear_pwngate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _PWNGATE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
