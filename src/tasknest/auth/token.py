"""Token exchange — trade an authorization code for Google OAuth tokens."""

from __future__ import annotations

import json
import logging

import httpx

from tasknest.auth.storage import CredentialStore
from tasknest.config import (
    ACCESS_TOKEN_KEY,
    GOOGLE_TOKEN_URL,
    PROFILE_KEY,
    REDIRECT_URI,
    REFRESH_TOKEN_KEY,
    REQUEST_TIMEOUT,
)
from tasknest.models import TokenSet, UserProfile

logger = logging.getLogger(__name__)


class ExchangeError(Exception):
    """Raised when the token endpoint rejects or garbles the exchange."""

    def __init__(self, message: str, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class TokenExchanger:
    """Exchanges authorization codes and persists the resulting tokens.

    - access_token  → always overwritten
    - refresh_token → overwritten only when the response carries one
    """

    def __init__(
        self,
        store: CredentialStore,
        client_id: str,
        client_secret: str,
        redirect_uri: str = REDIRECT_URI,
        token_url: str = GOOGLE_TOKEN_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.store = store
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.token_url = token_url
        self._transport = transport

    # ── public ──────────────────────────────────────────────────────

    async def exchange(self, code: str) -> TokenSet:
        """POST the code to the token endpoint and store the tokens.

        Codes are single use, so a failed exchange is never retried.
        """
        form = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            async with httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT, transport=self._transport
            ) as client:
                resp = await client.post(
                    self.token_url,
                    data=form,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error("Token exchange failed: %s", e)
            raise ExchangeError(f"Could not reach the token endpoint: {e}") from e

        if not resp.is_success:
            logger.error("Token exchange failed: HTTP %d", resp.status_code)
            raise ExchangeError(
                f"Failed to exchange code (HTTP {resp.status_code}): {resp.text}",
                status=resp.status_code,
                body=resp.text,
            )

        try:
            tokens = TokenSet.from_api(resp.json())
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise ExchangeError(
                f"Malformed token response: {resp.text}",
                status=resp.status_code,
                body=resp.text,
            ) from e

        self._persist(tokens)
        logger.info(
            "Stored access token (expires in %ss, refresh token %s)",
            tokens.expires_in,
            "updated" if tokens.refresh_token else "kept",
        )
        return tokens

    async def login(self, code: str) -> UserProfile:
        """Exchange the code, then confirm the login by fetching the profile."""
        from tasknest.google.client import GoogleClient

        await self.exchange(code)
        async with GoogleClient(self.store, transport=self._transport) as client:
            profile = await client.get_user_profile()
        self.store.set(PROFILE_KEY, json.dumps({"email": profile.email, "name": profile.name}))
        return profile

    # ── private ─────────────────────────────────────────────────────

    def _persist(self, tokens: TokenSet) -> None:
        self.store.set(ACCESS_TOKEN_KEY, tokens.access_token)
        if tokens.refresh_token:
            self.store.set(REFRESH_TOKEN_KEY, tokens.refresh_token)
