"""Record types shared by the auth, Google and task modules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class TokenSet:
    """Token endpoint response."""

    access_token: str
    expires_in: int = 0
    refresh_token: str | None = None  # omitted by Google on repeat consents
    scope: str = ""
    token_type: str = "Bearer"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "TokenSet":
        return cls(
            access_token=data["access_token"],
            expires_in=int(data.get("expires_in", 0)),
            refresh_token=data.get("refresh_token") or None,
            scope=data.get("scope", ""),
            token_type=data.get("token_type", "Bearer"),
        )


@dataclass
class UserProfile:
    id: str
    email: str
    name: str
    picture: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "UserProfile":
        return cls(
            id=data["id"],
            email=data.get("email", ""),
            name=data.get("name", ""),
            picture=data.get("picture"),
        )


@dataclass
class TaskList:
    id: str
    title: str
    updated: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "TaskList":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            updated=data.get("updated", ""),
        )


@dataclass
class RemoteTask:
    """A task as returned by the Google Tasks API."""

    id: str
    title: str
    status: str
    updated: str = ""
    due: str | None = None  # RFC 3339 timestamp, date part only is meaningful
    notes: str | None = None
    position: str | None = None  # Google's lexicographic ordering key
    self_link: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RemoteTask":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            status=data.get("status", "needsAction"),
            updated=data.get("updated", ""),
            due=data.get("due"),
            notes=data.get("notes"),
            position=data.get("position"),
            self_link=data.get("selfLink"),
        )


@dataclass
class LocalTask:
    """A row of the local tasks table."""

    id: str
    title: str
    completed: bool = False
    priority: str = "medium"
    category: str = ""
    due_date: str | None = None  # YYYY-MM-DD
    position: int = 0
