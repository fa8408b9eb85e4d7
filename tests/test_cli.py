"""Tests for the typer CLI."""

import json

import pytest
from typer.testing import CliRunner

from tasknest import __version__, config
from tasknest.auth.storage import FileCredentialStore
from tasknest.cli import app
from tasknest.google import client as google_client
from tasknest.models import LocalTask
from tasknest.tasks.store import TaskStore

from .fakes import json_response, refuse_connection, routing_transport

runner = CliRunner()
API = config.GOOGLE_TASKS_API_BASE


@pytest.fixture()
def fake_google(monkeypatch):
    """Route every GoogleClient created by the CLI through a mock transport."""
    routes = {}

    class _Client(google_client.GoogleClient):
        def __init__(self, store, **kwargs):
            super().__init__(store, transport=routing_transport(routes))

    monkeypatch.setattr(google_client, "GoogleClient", _Client)
    return routes


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_status_not_authenticated(cli_env):
    result = runner.invoke(app, ["auth", "status"])
    assert result.exit_code == 1
    assert "Not authenticated" in result.stdout


def test_status_and_logout(cli_env):
    store = FileCredentialStore(config.AUTH_FILE)
    store.set(config.ACCESS_TOKEN_KEY, "ya29.x")
    store.set(config.PROFILE_KEY, json.dumps({"name": "Ada", "email": "ada@example.com"}))

    result = runner.invoke(app, ["auth", "status"])
    assert result.exit_code == 0
    assert "ada@example.com" in result.stdout
    assert "No refresh token" in result.stdout

    result = runner.invoke(app, ["auth", "logout"])
    assert result.exit_code == 0
    assert "Credentials removed" in result.stdout
    assert not config.AUTH_FILE.exists()


def test_login_without_client_config(cli_env, monkeypatch):
    monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)
    monkeypatch.delenv("GOOGLE_CLIENT_SECRET", raising=False)

    result = runner.invoke(app, ["auth", "login", "--no-browser"])
    assert result.exit_code == 1
    assert "Configuration error" in result.stdout


def test_import_requires_login(cli_env, fake_google):
    result = runner.invoke(app, ["import"])
    assert result.exit_code == 1
    assert "Not authenticated" in result.stdout


def test_import_and_show_tasks(cli_env, fake_google):
    FileCredentialStore(config.AUTH_FILE).set(config.ACCESS_TOKEN_KEY, "ya29.x")
    fake_google[f"{API}/users/@me/lists"] = lambda r: json_response(
        200, {"items": [{"id": "L1", "title": "My Tasks"}]}
    )
    fake_google[f"{API}/lists/L1/tasks"] = lambda r: json_response(
        200,
        {
            "items": [
                {"id": "g1", "title": "Buy milk", "status": "needsAction", "due": "2024-05-01T00:00:00Z"},
                {"id": "g2", "title": "Call mom", "status": "completed"},
            ]
        },
    )

    result = runner.invoke(app, ["import"])
    assert result.exit_code == 0, result.stdout
    assert "Imported 2 tasks" in result.stdout

    tasks = TaskStore(config.TASKS_DB).get_tasks()
    assert [t.id for t in tasks] == ["g1", "g2"]

    result = runner.invoke(app, ["tasks"])
    assert result.exit_code == 0
    assert "Buy milk" in result.stdout
    assert "2024-05-01" in result.stdout


def test_import_api_error(cli_env, fake_google):
    FileCredentialStore(config.AUTH_FILE).set(config.ACCESS_TOKEN_KEY, "expired")
    fake_google[f"{API}/users/@me/lists"] = lambda r: json_response(401, {"error": "invalid_token"})

    result = runner.invoke(app, ["import"])
    assert result.exit_code == 1
    assert "Import failed" in result.stdout


def test_import_network_error(cli_env, fake_google):
    FileCredentialStore(config.AUTH_FILE).set(config.ACCESS_TOKEN_KEY, "ya29.x")
    fake_google[f"{API}/users/@me/lists"] = refuse_connection

    result = runner.invoke(app, ["import"])
    assert result.exit_code == 1
    assert "Import failed" in result.stdout
    assert "no response" in result.stdout


def test_import_unexpected_error_exits_cleanly(cli_env, monkeypatch):
    FileCredentialStore(config.AUTH_FILE).set(config.ACCESS_TOKEN_KEY, "ya29.x")

    async def _broken(*args, **kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr("tasknest.tasks.importer.import_all", _broken)

    result = runner.invoke(app, ["import"])
    assert result.exit_code == 1
    assert "database is locked" in result.stdout
    assert not isinstance(result.exception, RuntimeError)

def test_lists_table(cli_env, fake_google):
    FileCredentialStore(config.AUTH_FILE).set(config.ACCESS_TOKEN_KEY, "ya29.x")
    fake_google[f"{API}/users/@me/lists"] = lambda r: json_response(
        200, {"items": [{"id": "L1", "title": "Groceries"}]}
    )

    result = runner.invoke(app, ["lists"])
    assert result.exit_code == 0
    assert "Groceries" in result.stdout
    assert "Total: 1 lists" in result.stdout


def test_tasks_empty(cli_env):
    result = runner.invoke(app, ["tasks"])
    assert result.exit_code == 0
    assert "No tasks yet" in result.stdout


def test_tasks_in_display_order(cli_env):
    store = TaskStore(config.TASKS_DB)
    store.add_task(LocalTask(id="a", title="First"))
    store.add_task(LocalTask(id="b", title="Second"))
    store.update_task_order(["b", "a"])

    result = runner.invoke(app, ["tasks"])
    assert result.stdout.index("Second") < result.stdout.index("First")
