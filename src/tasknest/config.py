"""Global configuration constants."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Values already present in the environment take precedence over .env
load_dotenv(override=False)


class ConfigError(Exception):
    """Raised when required configuration is missing."""


# ── Google OAuth ───────────────────────────────────────────────────
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_SCOPE = " ".join(
    [
        "https://www.googleapis.com/auth/tasks",
        "https://www.googleapis.com/auth/calendar",
        "https://www.googleapis.com/auth/userinfo.email",
        "https://www.googleapis.com/auth/userinfo.profile",
    ]
)

# ── Google API ─────────────────────────────────────────────────────
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_TASKS_API_BASE = "https://tasks.googleapis.com/tasks/v1"
GOOGLE_TASKLISTS_PATH = "/users/@me/lists"
GOOGLE_TASKS_PATH = "/lists/{tasklist_id}/tasks"
REQUEST_TIMEOUT = 30  # seconds

# ── Callback listener ──────────────────────────────────────────────
# The redirect URI registered with Google must match exactly, port included.
CALLBACK_HOST = "127.0.0.1"
CALLBACK_PORT = int(os.environ.get("TASKNEST_CALLBACK_PORT", "14123"))
REDIRECT_URI = f"http://localhost:{CALLBACK_PORT}"
CALLBACK_TIMEOUT = 120  # seconds

# ── Credential keys ────────────────────────────────────────────────
ACCESS_TOKEN_KEY = "google_access_token"
REFRESH_TOKEN_KEY = "google_refresh_token"
PROFILE_KEY = "google_profile"

# ── Import defaults ────────────────────────────────────────────────
# Google Tasks has no priority or category; imported tasks get these.
IMPORT_PRIORITY = "medium"
IMPORT_CATEGORY = "Google Tasks"

# ── Storage ────────────────────────────────────────────────────────
TASKNEST_DIR = Path(os.environ.get("TASKNEST_HOME", Path.home() / ".tasknest"))
AUTH_FILE = TASKNEST_DIR / "auth.json"
TASKS_DB = TASKNEST_DIR / "tasks.db"
LOG_FILE = TASKNEST_DIR / "tasknest.log"


def get_client_credentials() -> tuple[str, str]:
    """Return (client_id, client_secret) from the environment."""
    client_id = os.environ.get("GOOGLE_CLIENT_ID", "")
    client_secret = os.environ.get("GOOGLE_CLIENT_SECRET", "")
    missing = [
        name
        for name, value in (
            ("GOOGLE_CLIENT_ID", client_id),
            ("GOOGLE_CLIENT_SECRET", client_secret),
        )
        if not value
    ]
    if missing:
        raise ConfigError(
            f"{' and '.join(missing)} must be set (environment or .env file)."
        )
    return client_id, client_secret
