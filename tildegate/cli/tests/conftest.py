"""Shared pytest fixtures for tildegate.cli tests."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for key in ("IRC_NICKNAME", "IRC_PEER", "REQUEST_TIMEOUT", "RECONNECT_DELAY", "INTENTS_FILE"):
        monkeypatch.delenv(key, raising=False)
    env_path = tmp_path / ".env"
    env_path.write_text("RECONNECT_DELAY=0.01\n")
    monkeypatch.setenv("DOTENV_PATH", str(env_path))
    return env_path


@pytest.fixture(autouse=True)
def _reset_singletons(_isolate_env: Path):
    from tildegate.runtime.util.singletons import reset_all_singletons

    reset_all_singletons()
    yield
    reset_all_singletons()
