"""Credential persistence — string secrets keyed by name in ~/.tasknest/auth.json."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from typing import Protocol

from tasknest.config import AUTH_FILE


class CredentialStore(Protocol):
    """Get/set by key, last write wins."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryCredentialStore:
    """Process-local store, used when nothing should touch disk."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class FileCredentialStore:
    """Manages credential persistence on disk."""

    def __init__(self, path: Path = AUTH_FILE) -> None:
        self.path = Path(path)

    # ── public ──────────────────────────────────────────────────────

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        """Write one key, keeping the others, with owner-only permissions."""
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self) -> bool:
        """Remove stored credentials.  Returns True if file existed."""
        if self.path.exists():
            self.path.unlink()
            return True
        return False

    # ── private ─────────────────────────────────────────────────────

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        self._ensure_dir()
        self.path.write_text(
            json.dumps(data, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        # chmod 600 — owner read/write only (skip on Windows)
        if os.name != "nt":
            self.path.chmod(stat.S_IRUSR | stat.S_IWUSR)

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if os.name != "nt":
            self.path.parent.chmod(stat.S_IRWXU)
