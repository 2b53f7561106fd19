"""
Runtime credential store for user-provided integration credentials.

Credentials supplied via the API override the .env-based defaults from config.Settings.
Keys use the Settings field names (e.g. "slack_bot_token", "zendesk_subdomain").
Stored in-memory only; they do not persist across server restarts.
"""

import threading
from typing import Dict, Optional

from kbsync.config import Settings, get_settings

PROVIDER_KEYS = {
    "slack": ["slack_bot_token", "slack_channel_id"],
    "zendesk": ["zendesk_subdomain", "zendesk_email", "zendesk_api_token"],
    "github": ["github_token", "github_repo_owner", "github_repo_name"],
}


class CredentialStore:
    def __init__(self, settings: Optional[Settings] = None):
        self._lock = threading.Lock()
        self._store: Dict[str, str] = {}
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._store[key] = value

    def get(self, key: str, default: str = "") -> str:
        """Runtime value if set, else the Settings value, else default."""
        with self._lock:
            value = self._store.get(key)
        if value:
            return value
        return getattr(self.settings, key, default) or default

    def has(self, key: str) -> bool:
        with self._lock:
            return bool(self._store.get(key))

    def clear(self, prefix: str = "") -> None:
        with self._lock:
            if prefix:
                for key in [k for k in self._store if k.startswith(prefix)]:
                    del self._store[key]
            else:
                self._store.clear()
