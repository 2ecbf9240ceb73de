"""Configuration management for the synchronizer."""

from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

from jira_toggl_sync.utils.storage import StorageManager

DEFAULT_SETTINGS: dict[str, Any] = {
    "jira_url": None,
    "jira_username": None,
    "issue_keys": [],
    "issue_key_pattern": r"[A-Z][A-Z0-9]+-\d+",
    "rounding_minutes": 1,
    "max_workers": 4,
    "days_back": 7,
    "timezone": None,
}


class Config:
    """Application settings backed by settings.yaml."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize configuration.

        Args:
            config_dir: Directory for storing configuration.
        """
        self.storage = StorageManager(config_dir)
        self._settings = self.storage.load_settings()

    def get(self, key: str) -> Any:
        """Get a setting, falling back to its default.

        Args:
            key: Setting name.

        Returns:
            Setting value.

        Raises:
            KeyError: If the setting is unknown.
        """
        if key not in DEFAULT_SETTINGS:
            raise KeyError(f"Unknown setting: {key}")
        return self._settings.get(key, DEFAULT_SETTINGS[key])

    def update_setting(self, key: str, value: Any) -> None:
        """Update and persist a setting.

        Args:
            key: Setting name.
            value: New value.

        Raises:
            KeyError: If the setting is unknown.
        """
        if key not in DEFAULT_SETTINGS:
            raise KeyError(f"Unknown setting: {key}")
        self._settings[key] = value
        self.storage.save_settings(self._settings)

    def get_settings(self) -> dict[str, Any]:
        """Get all settings with defaults applied."""
        return {key: self.get(key) for key in DEFAULT_SETTINGS}

    @property
    def jira_url(self) -> str | None:
        return self.get("jira_url")

    @property
    def jira_username(self) -> str | None:
        return self.get("jira_username")

    @property
    def issue_keys(self) -> list[str]:
        """Issue keys always reconciled, even without Toggl entries in the window."""
        return list(self.get("issue_keys") or [])

    @property
    def issue_key_pattern(self) -> str:
        return self.get("issue_key_pattern")

    @property
    def rounding_minutes(self) -> int:
        return int(self.get("rounding_minutes"))

    @property
    def max_workers(self) -> int:
        return max(1, int(self.get("max_workers")))

    @property
    def days_back(self) -> int:
        return int(self.get("days_back"))

    @property
    def timezone(self) -> ZoneInfo | None:
        """Timezone the synced days are counted in, None for the local one."""
        name = self.get("timezone")
        return ZoneInfo(name) if name else None

    def is_configured(self) -> bool:
        """Check that Jira settings and both API tokens are present."""
        return bool(
            self.jira_url
            and self.jira_username
            and self.storage.get_token("jira")
            and self.storage.get_token("toggl")
        )
