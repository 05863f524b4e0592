from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep config and log files out of the user's home and the repo."""
    state = tmp_path / "_state"
    monkeypatch.setenv("CUSTOMIZATIONS_CONFIG_FILE", str(state / "config.json"))
    monkeypatch.setenv("OPS_LOG_FILE", str(state / "operations.log"))
    monkeypatch.setenv("LOG_FILE", str(state / "server.log"))
    return state
