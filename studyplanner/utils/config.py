"""
Configuration management for the study planner.

This module handles user configuration, data directories, and settings.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, cast

from platformdirs import user_config_dir, user_data_dir

logger = logging.getLogger(__name__)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, recursing into nested dicts."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Manages study planner configuration and data directories."""

    def __init__(self) -> None:
        """Initialize configuration manager."""
        self.app_name = "studyplanner"
        self.config_dir = Path(user_config_dir(self.app_name))
        self.data_dir = Path(user_data_dir(self.app_name))
        self.config_file = self.config_dir / "config.json"

        # Ensure directories exist
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Default configuration
        self.default_config: Dict[str, Any] = {
            "data_directory": str(self.data_dir),
            "date_format": "%Y-%m-%d",
            "time_format": "%H:%M",
            "display": {
                "show_seconds": False,
            },
            "pomodoro": {
                "focus_duration": 25 * 60,
                "short_break_duration": 5 * 60,
                "long_break_duration": 15 * 60,
                "sessions_before_long_break": 4,
                "auto_start_breaks": True,
                "auto_start_pomodoros": False,
                "sound": "bell",
                "volume": 50,
            },
            "planner": {
                "day_start_hour": 9,
                "day_end_hour": 21,
                "slot_step_hours": 2,
                "max_suggestions_per_day": 2,
                "suggestion_days": 3,
                "upcoming_limit": 5,
            },
            "achievements": {
                "goal_completed_id": "3",
            },
            "notifications": {
                "enabled": True,
                "timeout_ms": 5000,
                "fallback_to_log": True,
            },
            "logging": {
                "level": "WARNING",
                "file": False,
            },
        }

        # Load existing configuration
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, creating default if it doesn't exist."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r") as f:
                    loaded_config = json.load(f)

                # Merge with defaults to ensure all keys exist
                return _deep_merge(self.default_config, loaded_config)

            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Could not load config file, using defaults: {e}")

        # Create default config file
        self._save_config(self.default_config)
        return copy.deepcopy(self.default_config)

    def _save_config(self, config: Dict[str, Any]) -> None:
        """Save configuration to file."""
        try:
            with open(self.config_file, "w") as f:
                json.dump(config, f, indent=2, sort_keys=True)
        except IOError as e:
            logger.warning(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key, with optional default."""
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by key."""
        keys = key.split(".")
        config = self._config

        # Navigate to the parent dictionary
        for k in keys[:-1]:
            if k not in config or not isinstance(config[k], dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

        self._save_config(self._config)

    def as_dict(self) -> Dict[str, Any]:
        """Get a copy of the full configuration."""
        return copy.deepcopy(self._config)

    def get_data_dir(self) -> Path:
        """Get the data directory path."""
        data_dir_str = self.get("data_directory", str(self.data_dir))
        return Path(data_dir_str)

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        return self.config_dir

    def get_date_format(self) -> str:
        """Get the date format string."""
        return cast(str, self.get("date_format", "%Y-%m-%d"))

    def get_time_format(self) -> str:
        """Get the time format string."""
        return cast(str, self.get("time_format", "%H:%M"))

    def show_seconds(self) -> bool:
        """Check if seconds should be shown in duration displays."""
        return cast(bool, self.get("display.show_seconds", False))

    def get_pomodoro_defaults(self) -> Dict[str, Any]:
        """Get the default Pomodoro settings."""
        return cast(Dict[str, Any], copy.deepcopy(self.get("pomodoro", {})))

    def get_planner_options(self) -> Dict[str, int]:
        """Get slot suggestion and listing options.

        Only keys present in the default ``planner`` group are returned;
        unknown keys in the user's file are logged and ignored.
        """
        known = self.default_config["planner"]
        stored = self.get("planner", {})
        if not isinstance(stored, dict):
            logger.warning("Ignoring non-object 'planner' configuration group")
            stored = {}
        unknown = sorted(set(stored) - set(known))
        if unknown:
            logger.warning(f"Ignoring unknown planner options: {', '.join(unknown)}")
        return {key: stored.get(key, default) for key, default in known.items()}

    def get_goal_achievement_id(self) -> str:
        """Get the achievement unlocked when a study goal is completed."""
        return cast(str, self.get("achievements.goal_completed_id", "3"))

    def are_notifications_enabled(self) -> bool:
        """Check if desktop notifications are enabled."""
        return cast(bool, self.get("notifications.enabled", True))

    def get_notification_timeout(self) -> int:
        """Get notification timeout in milliseconds."""
        return cast(int, self.get("notifications.timeout_ms", 5000))

    def should_fallback_to_log(self) -> bool:
        """Check if notifications should fallback to logging when unavailable."""
        return cast(bool, self.get("notifications.fallback_to_log", True))

    def get_log_level(self) -> str:
        """Get the configured log level name."""
        return cast(str, self.get("logging.level", "WARNING")).upper()

    def is_file_logging_enabled(self) -> bool:
        """Check if log output should also go to a file in the data directory."""
        return cast(bool, self.get("logging.file", False))

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self._config = copy.deepcopy(self.default_config)
        self._save_config(self._config)


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
