"""Async HTTP client for the Google profile and Tasks APIs."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from tasknest.auth.storage import CredentialStore
from tasknest.config import (
    ACCESS_TOKEN_KEY,
    GOOGLE_TASKLISTS_PATH,
    GOOGLE_TASKS_API_BASE,
    GOOGLE_TASKS_PATH,
    GOOGLE_USERINFO_URL,
    REQUEST_TIMEOUT,
)
from tasknest.models import RemoteTask, TaskList, UserProfile

logger = logging.getLogger(__name__)


class NoTokenError(Exception):
    """Raised when no access token is stored yet."""


class ApiError(Exception):
    """Raised when a Google API call fails or returns a non-2xx status.

    ``status`` is None when no response arrived (DNS, connect, timeout).
    """

    def __init__(self, status: int | None, body: str, url: str = "") -> None:
        where = f"HTTP {status}" if status is not None else "no response"
        super().__init__(f"API error ({where}) from {url or 'Google'}: {body}")
        self.status = status
        self.body = body
        self.url = url


class GoogleClient:
    """Async client that reads the user's profile and Google Tasks.

    Each call reads the access token from the credential store at request
    time.  Expired tokens surface as ApiError(401); there is no refresh.
    """

    def __init__(
        self,
        store: CredentialStore,
        api_base_url: str = GOOGLE_TASKS_API_BASE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.store = store
        self._api_base = api_base_url.rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GoogleClient":
        self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT, transport=self._transport)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._client:
            await self._client.aclose()

    # ── Profile ─────────────────────────────────────────────────────

    async def get_user_profile(self) -> UserProfile:
        """GET userinfo — the signed-in Google account."""
        data = await self._get(GOOGLE_USERINFO_URL)
        return UserProfile.from_api(data)

    # ── Task lists ──────────────────────────────────────────────────

    async def list_task_lists(self) -> list[TaskList]:
        """GET /users/@me/lists — all task lists of the user."""
        data = await self._get(f"{self._api_base}{GOOGLE_TASKLISTS_PATH}")
        # Google omits "items" entirely for an empty collection
        return [TaskList.from_api(item) for item in data.get("items") or []]

    # ── Tasks ───────────────────────────────────────────────────────

    async def list_tasks(self, tasklist_id: str) -> list[RemoteTask]:
        """GET /lists/{id}/tasks — including completed and hidden tasks."""
        path = GOOGLE_TASKS_PATH.format(tasklist_id=tasklist_id)
        data = await self._get(
            f"{self._api_base}{path}",
            params={"showCompleted": "true", "showHidden": "true"},
        )
        return [RemoteTask.from_api(item) for item in data.get("items") or []]

    # ── Private helpers ─────────────────────────────────────────────

    def _access_token(self) -> str:
        token = self.store.get(ACCESS_TOKEN_KEY)
        if not token:
            raise NoTokenError("Not authenticated. Run `tasknest auth login` first.")
        return token

    async def _get(self, url: str, params: dict[str, str] | None = None) -> dict:
        assert self._client is not None
        headers = {
            "Authorization": f"Bearer {self._access_token()}",
            "Accept": "application/json",
        }
        try:
            resp = await self._client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.error("GET %s failed: %s", url, e)
            raise ApiError(None, str(e), url=url) from e
        if not resp.is_success:
            logger.error("GET %s failed: HTTP %d", url, resp.status_code)
            raise ApiError(resp.status_code, resp.text, url=url)
        logger.debug("GET %s → %d", url, resp.status_code)
        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise ApiError(resp.status_code, f"malformed JSON: {resp.text}", url=url) from e
