"""
Configuration Manager for the breakfast check-in service

Loads optional settings from a JSON file (``config.json`` at the repository
root, or the path in BREAKFAST_CONFIG) and credentials from the environment.
"""
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Any
import logging

import pytz
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# Default configuration file location
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.json"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "timezone": "Asia/Seoul",
    "breakfast_start_hour": 8,
    "breakfast_end_hour": 10,
    "roster_cache_ttl": 300,
    "name_length": 3,
}


@dataclass(frozen=True)
class BreakfastSettings:
    """Resolved settings handed to the breakfast service."""
    timezone: str = "Asia/Seoul"
    breakfast_start_hour: int = 8
    breakfast_end_hour: int = 10
    roster_cache_ttl: float = 300
    name_length: int = 3

    @property
    def tz(self):
        return pytz.timezone(self.timezone)

    def in_breakfast_window(self, hour: int) -> bool:
        return self.breakfast_start_hour <= hour < self.breakfast_end_hour

    @property
    def window_label(self) -> str:
        return f"{self.breakfast_start_hour:02d}:00-{self.breakfast_end_hour:02d}:00"


class ConfigManager:
    """Manages application configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        env_path = os.getenv("BREAKFAST_CONFIG")
        self.config_path = Path(config_path or env_path or DEFAULT_CONFIG_PATH)
        self.config_data: Dict[str, Any] = {}
        self.global_settings: Dict[str, Any] = dict(DEFAULT_SETTINGS)
        self._load_config()

    def _load_config(self):
        """Load configuration from JSON file, falling back to defaults."""
        if not self.config_path.exists():
            logger.info(f"No configuration file at {self.config_path}, using defaults")
            return

        try:
            with open(self.config_path, 'r') as f:
                self.config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}")

        self.global_settings.update(self.config_data.get("global_settings", {}))
        logger.info(f"Loaded configuration from {self.config_path}")

    def get_global_setting(self, key: str, default: Any = None) -> Any:
        """Get a global setting value."""
        return self.global_settings.get(key, default)

    def get_settings(self) -> BreakfastSettings:
        settings = BreakfastSettings(
            timezone=str(self.get_global_setting("timezone")),
            breakfast_start_hour=int(self.get_global_setting("breakfast_start_hour")),
            breakfast_end_hour=int(self.get_global_setting("breakfast_end_hour")),
            roster_cache_ttl=float(self.get_global_setting("roster_cache_ttl")),
            name_length=int(self.get_global_setting("name_length")),
        )
        try:
            pytz.timezone(settings.timezone)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone in configuration: {settings.timezone}")
        return settings

    def reload(self):
        """Reload configuration from file."""
        self.config_data = {}
        self.global_settings = dict(DEFAULT_SETTINGS)
        self._load_config()


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[Path] = None) -> ConfigManager:
    """Get or create the global configuration manager."""
    global _config_manager
    if _config_manager is None or config_path is not None:
        _config_manager = ConfigManager(config_path)
    return _config_manager


def get_settings() -> BreakfastSettings:
    """Convenience function to get the resolved settings."""
    return get_config_manager().get_settings()


# Environment variables configuration
class EnvConfig:
    """Manages environment variables."""

    @staticmethod
    def get_spreadsheet_id() -> str:
        """Get the ID of the breakfast spreadsheet."""
        spreadsheet_id = os.getenv("GOOGLE_SPREADSHEET_ID")
        if not spreadsheet_id:
            raise ValueError("GOOGLE_SPREADSHEET_ID must be set")
        return spreadsheet_id

    @staticmethod
    def get_credentials_path() -> Optional[str]:
        """Optional explicit service account file."""
        return os.getenv("BREAKFAST_CREDENTIALS_FILE") or None

    @staticmethod
    def get_log_level() -> str:
        return os.getenv("LOG_LEVEL", "INFO").upper()
