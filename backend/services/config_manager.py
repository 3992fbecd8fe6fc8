"""
Configuration Manager - Handle backend settings persistence
"""

from __future__ import annotations

import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any


def _merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """Merge update into a copy of base, one level deep for nested sections"""
    merged = copy.deepcopy(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Manage configuration persistence"""

    _instance = None
    _config_file = None

    def __init__(self, config_dir: str | os.PathLike | None = None):
        try:
            # Explicit argument, then environment variable, then ~/.theme_diff
            config_dir = config_dir or os.environ.get("THEME_DIFF_CONFIG_DIR")
            if not config_dir:
                config_dir = os.path.expanduser("~/.theme_diff")

            config_path = Path(config_dir)
            try:
                config_path.mkdir(parents=True, exist_ok=True)
                self._config_file = config_path / "config.json"
            except OSError as e:
                print(f"[ConfigManager] Cannot write to {config_dir}: {e}")
                self._config_file = None

            # Fall back to the temp directory when the preferred path is unusable
            if not self._config_file:
                tmp_dir = Path(tempfile.gettempdir()) / "theme_diff"
                tmp_dir.mkdir(parents=True, exist_ok=True)
                self._config_file = tmp_dir / "config.json"
                print(f"[ConfigManager] Using temporary config path: {self._config_file}")

        except OSError as e:
            print(f"[ConfigManager] Critical error in init: {e}")
            self._config_file = Path(tempfile.gettempdir()) / "theme_diff_config_fallback.json"

        self._config = self._load_config()

    @classmethod
    def get_instance(cls) -> "ConfigManager":
        """Get singleton instance"""
        if cls._instance is None:
            cls._instance = ConfigManager()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Forget the singleton so the next get_instance() re-reads the environment"""
        cls._instance = None

    @property
    def config_dir(self) -> Path:
        return self._config_file.parent

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file, filling in defaults for missing keys"""
        if not self._config_file.exists():
            return self._default_config()

        try:
            with open(self._config_file) as f:
                return _merge(self._default_config(), json.load(f))
        except (json.JSONDecodeError, OSError) as e:
            print(f"[ConfigManager] Error loading config: {e}")
            return self._default_config()

    def _default_config(self) -> dict[str, Any]:
        """Get default configuration"""
        return {
            "shop": "",  # e.g. example.myshopify.com
            "accessToken": "",
            "apiVersion": "2023-10",
            "requestTimeout": 30,
            "rateLimit": {"intervalMs": 1000, "maxRetries": 3, "multiplier": 2},
            "scan": {
                "allowedExtensions": [".js", ".json", ".liquid"],
                "progressEvery": 5,
                "stripTrailingWhitespace": False,
            },
            "database": {"path": ""},  # empty: comparisons.db in the config directory
            "server": {"host": "0.0.0.0", "port": 8000},
        }

    def get_config(self) -> dict[str, Any]:
        """Get current configuration"""
        # Reload config from file to ensure we have the latest
        self._config = self._load_config()
        return copy.deepcopy(self._config)

    def save_config(self, config: dict[str, Any]):
        """Merge config into the current settings and write them to file"""
        self._config = _merge(self._config, config)

        self._config_file.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self._config_file, "w") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            raise RuntimeError(f"Failed to save config: {e}")
