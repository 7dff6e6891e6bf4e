"""
Configuration service for reading settings from the environment.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger("app.config")


DEFAULT_SETTINGS: dict[str, str] = {
    "MEDIA_ROOT": "media",
    "MEDIA_BASE_URL": "/media",
    "MEDIA_MAX_FILE_MB": "50",
    "MEDIA_TIMEOUT": "60",
    "IMPORT_MAX_FILE_MB": "10",
    "IMPORT_SYNC_MAX_ENTRIES": "5",
    "IMPORT_STATUS_RETENTION_SECONDS": "600",
    "IMPORT_STALE_AFTER_SECONDS": "1800",
    "IMPORT_POLL_INTERVAL_SECONDS": "2",
    "IMPORT_POLL_MAX_ATTEMPTS": "150",
    "IMPORT_POLL_MAX_FAILURES": "3",
    "AIRBNB_SCRAPER_URL": "https://api.hasdata.com/scrape/airbnb/property",
    "AIRBNB_SCRAPER_API_KEY": "",
    "AIRBNB_SCRAPER_TIMEOUT": "30",
    "AIRBNB_SCRAPER_MAX_RETRIES": "3",
    "AUTH_TOKEN_MAX_AGE": "86400",
}


class ConfigService:
    """Service for managing application configuration."""

    def __init__(self):
        self._cache: dict[str, Any] = {}

    def get_setting(self, key: str, default: Any = None) -> Any:
        """
        Get setting value from the environment.

        Priority: Override > Environment > Default table > Default argument
        """
        if key in self._cache:
            return self._cache[key]

        if default is None:
            default = DEFAULT_SETTINGS.get(key)
        value = os.getenv(key, default)

        self._cache[key] = value

        logger.debug(f"Retrieved setting {key}={value}")
        return value

    def set_setting(self, key: str, value: Any) -> None:
        """Override a setting for the lifetime of the process."""
        self._cache[key] = value
        logger.info(f"Set setting {key}={value}")

    def reset(self, key: Optional[str] = None) -> None:
        """Drop cached values so the next read goes back to the environment."""
        if key is None:
            self._cache.clear()
        else:
            self._cache.pop(key, None)

    def now(self) -> datetime:
        """
        Get current time (real or fake based on APP_NOW_MODE).

        Returns:
            Current datetime (real or fake)
        """
        now_mode = self.get_setting("APP_NOW_MODE", "real")

        if now_mode == "fake":
            fake_now_str = self.get_setting("APP_FAKE_NOW")
            if fake_now_str:
                try:
                    fake_date = datetime.strptime(fake_now_str, "%Y-%m-%d")
                    logger.debug(f"Using fake time: {fake_date}")
                    return fake_date
                except ValueError:
                    logger.warning(f"Invalid APP_FAKE_NOW format: {fake_now_str}, using real time")

        return datetime.now(timezone.utc)


# Global instance
config_service = ConfigService()
