"""Google OAuth authorization-code flow — browser consent + local callback."""

from __future__ import annotations

import logging
import secrets
import webbrowser
from urllib.parse import urlencode

import httpx
from rich.console import Console

from tasknest.auth.callback import CallbackListener
from tasknest.auth.storage import CredentialStore
from tasknest.auth.token import TokenExchanger
from tasknest.config import (
    CALLBACK_HOST,
    CALLBACK_PORT,
    CALLBACK_TIMEOUT,
    GOOGLE_AUTH_URL,
    GOOGLE_SCOPE,
    REDIRECT_URI,
    get_client_credentials,
)
from tasknest.models import UserProfile

console = Console()
logger = logging.getLogger(__name__)


def new_state() -> str:
    """Random per-attempt value tying the callback to this login."""
    return secrets.token_urlsafe(24)


def build_authorization_url(
    client_id: str,
    state: str | None = None,
    redirect_uri: str = REDIRECT_URI,
) -> str:
    """Build the Google consent URL the browser is sent to."""
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": GOOGLE_SCOPE,
        "access_type": "offline",
        "prompt": "consent",
    }
    if state:
        params["state"] = state
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


async def login(
    store: CredentialStore,
    *,
    open_browser: bool = True,
    timeout: float = CALLBACK_TIMEOUT,
    host: str = CALLBACK_HOST,
    port: int = CALLBACK_PORT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UserProfile:
    """Run the full authorization-code flow interactively.

    Order is strict: capture code → exchange → fetch profile.  Any failure
    ends the attempt; the caller starts a new one.
    """
    client_id, client_secret = get_client_credentials()
    state = new_state()

    # Bind before the browser opens so a busy port fails fast
    listener = CallbackListener(host=host, port=port, expected_state=state)
    listener.bind()
    redirect_uri = f"http://localhost:{listener.port}"

    try:
        url = build_authorization_url(client_id, state=state, redirect_uri=redirect_uri)
        console.print()
        console.print("[bold cyan]🔐 Google Authorization Required[/]")
        console.print()
        console.print(f"  Open: [bold link={url}]{url}[/]")
        console.print()
        if open_browser and webbrowser.open(url):
            console.print("[dim]Browser opened. Waiting for authorization...[/]")
        else:
            console.print("[dim]Waiting for authorization...[/]")

        code = await listener.await_authorization_code(timeout=timeout)
    finally:
        listener.close()
    logger.debug("Exchanging authorization code")

    exchanger = TokenExchanger(
        store,
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        transport=transport,
    )
    profile = await exchanger.login(code)
    console.print("[bold green]✅ Google authorization successful![/]")
    return profile
