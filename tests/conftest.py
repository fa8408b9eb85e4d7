"""Shared fixtures: in-memory credentials, temp task DB, CLI paths."""

from __future__ import annotations

from pathlib import Path

import pytest

from tasknest import config
from tasknest.auth.storage import MemoryCredentialStore
from tasknest.tasks.store import TaskStore


@pytest.fixture()
def creds() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture()
def authed_creds() -> MemoryCredentialStore:
    return MemoryCredentialStore({config.ACCESS_TOKEN_KEY: "ya29.test-token"})


@pytest.fixture()
def task_store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "tasks.db")


@pytest.fixture()
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at a temp data dir and keep root logging untouched."""
    import tasknest.logging_setup

    monkeypatch.setattr(config, "AUTH_FILE", tmp_path / "auth.json")
    monkeypatch.setattr(config, "TASKS_DB", tmp_path / "tasks.db")
    monkeypatch.setattr(config, "LOG_FILE", tmp_path / "tasknest.log")
    monkeypatch.setattr(tasknest.logging_setup, "setup_logging", lambda **_: None)
    return tmp_path
