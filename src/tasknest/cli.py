"""TaskNest CLI — powered by Typer."""

from __future__ import annotations

import asyncio
import json
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from tasknest import __version__, config

app = typer.Typer(
    name="tasknest",
    help="📝 TaskNest — local task manager with Google Tasks import",
    no_args_is_help=True,
    invoke_without_command=True,
    rich_markup_mode="rich",
)
auth_app = typer.Typer(help="🔐 Google authentication")
app.add_typer(auth_app, name="auth")

console = Console()


def _credential_store():
    from tasknest.auth.storage import FileCredentialStore

    return FileCredentialStore(config.AUTH_FILE)


def _task_store():
    from tasknest.tasks.store import TaskStore

    return TaskStore(config.TASKS_DB)


def _fail(prefix: str, error: Exception) -> NoReturn:
    console.print(f"[bold red]❌ {prefix}:[/] {error}", highlight=False)
    raise typer.Exit(1)


# ── Auth commands ───────────────────────────────────────────────────


@auth_app.command("login")
def auth_login(
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Only print the authorization URL."
    ),
    timeout: int = typer.Option(
        config.CALLBACK_TIMEOUT,
        "--timeout",
        "-t",
        help="Seconds to wait for the browser redirect.",
    ),
) -> None:
    """Sign in with Google and store the tokens."""
    from tasknest.auth.callback import BindError, CallbackError, CallbackTimeoutError
    from tasknest.auth.oauth import login
    from tasknest.auth.token import ExchangeError
    from tasknest.config import ConfigError
    from tasknest.google.client import ApiError

    store = _credential_store()
    try:
        profile = asyncio.run(
            login(store, open_browser=not no_browser, timeout=timeout)
        )
    except ConfigError as e:
        _fail("Configuration error", e)
    except BindError as e:
        _fail("Cannot start callback listener", e)
    except CallbackTimeoutError as e:
        _fail("Login timed out", e)
    except CallbackError as e:
        _fail("Login failed", e)
    except ExchangeError as e:
        _fail("Token exchange failed", e)
    except ApiError as e:
        _fail("Could not fetch profile", e)
    except Exception as e:
        _fail("Login failed unexpectedly", e)

    console.print()
    console.print(f"[bold green]✅ Signed in as {profile.name} <{profile.email}>[/]")
    console.print(f"[dim]   Credentials saved to {store.path}[/]")


@auth_app.command("status")
def auth_status() -> None:
    """Show current authentication status."""
    store = _credential_store()
    if not store.get(config.ACCESS_TOKEN_KEY):
        console.print("[bold red]❌ Not authenticated[/]")
        console.print("[dim]   Run: tasknest auth login[/]")
        raise typer.Exit(1)

    console.print("[bold green]✅ Authenticated[/]")
    raw_profile = store.get(config.PROFILE_KEY)
    if raw_profile:
        profile = json.loads(raw_profile)
        console.print(f"[dim]   Account: {profile.get('name', '—')} <{profile.get('email', '—')}>[/]")
    if store.get(config.REFRESH_TOKEN_KEY):
        console.print("[dim]   Refresh token stored[/]")
    else:
        console.print("[yellow]   No refresh token stored[/]")


@auth_app.command("logout")
def auth_logout() -> None:
    """Remove stored credentials."""
    if _credential_store().delete():
        console.print("[bold green]✅ Credentials removed[/]")
    else:
        console.print("[dim]No credentials found[/]")


# ── Google Tasks commands ───────────────────────────────────────────


@app.command("lists")
def list_task_lists() -> None:
    """List Google task lists."""
    from tasknest.google.client import ApiError, GoogleClient, NoTokenError

    store = _credential_store()

    async def _fetch():
        async with GoogleClient(store) as client:
            return await client.list_task_lists()

    try:
        tasklists = asyncio.run(_fetch())
    except NoTokenError as e:
        _fail("Not authenticated", e)
    except ApiError as e:
        _fail("Failed to fetch task lists", e)
    except Exception as e:
        _fail("Failed to fetch task lists", e)

    if not tasklists:
        console.print("[yellow]No task lists found[/]")
        return

    table = Table(title="📋 Google Task Lists", show_lines=False)
    table.add_column("List ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="white")
    table.add_column("Updated", style="dim")
    for tl in tasklists:
        table.add_row(tl.id, tl.title, tl.updated or "—")

    console.print(table)
    console.print(f"\n[dim]Total: {len(tasklists)} lists[/]")


@app.command("import")
def import_command(
    tasklist_id: Optional[str] = typer.Option(
        None, "--list", "-l", help="Import only this task list (default: all)."
    ),
) -> None:
    """Import Google Tasks into the local task list."""
    from tasknest.google.client import ApiError, GoogleClient, NoTokenError
    from tasknest.tasks.importer import import_all

    store = _credential_store()
    tasks = _task_store()

    async def _import():
        async with GoogleClient(store) as client:
            return await import_all(client, tasks, tasklist_id=tasklist_id)

    try:
        count = asyncio.run(_import())
    except NoTokenError as e:
        _fail("Not authenticated", e)
    except ApiError as e:
        _fail("Import failed", e)
    except Exception as e:
        _fail("Import failed", e)

    console.print(f"[bold green]✅ Imported {count} tasks[/]")


# ── Local tasks ─────────────────────────────────────────────────────


@app.command("tasks")
def list_tasks() -> None:
    """Show local tasks in display order."""
    local_tasks = _task_store().get_tasks()
    if not local_tasks:
        console.print("[yellow]No tasks yet[/]")
        return

    table = Table(title="📝 Tasks", show_lines=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Done", justify="center")
    table.add_column("Title", style="white")
    table.add_column("Due", style="cyan")
    table.add_column("Priority")
    table.add_column("Category", style="dim")
    for task in local_tasks:
        table.add_row(
            str(task.position),
            "✔" if task.completed else "",
            task.title,
            task.due_date or "—",
            task.priority,
            task.category,
        )
    console.print(table)


# ── Version ─────────────────────────────────────────────────────────


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
) -> None:
    if version:
        console.print(f"TaskNest v{__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()

    from tasknest.logging_setup import setup_logging

    setup_logging(verbose=verbose, log_file=config.LOG_FILE)
