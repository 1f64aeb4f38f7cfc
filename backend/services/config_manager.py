"""
Configuration Manager - Handle patch engine settings persistence
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .impact_analyzer import DEFAULT_IMPACT_CONFIG

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manage configuration persistence"""

    _instance = None
    _config_file = None

    def __init__(self):
        try:
            # 1st: environment variable
            config_dir = os.environ.get("PATCH_ENGINE_CONFIG_DIR")

            # 2nd: ~/.patch_engine
            if not config_dir:
                config_dir = os.path.expanduser("~/.patch_engine")

            config_path = Path(config_dir)
            try:
                config_path.mkdir(parents=True, exist_ok=True)
                self._config_file = config_path / "config.json"
            except OSError as e:
                logger.warning("Cannot write to %s: %s", config_dir, e)
                self._config_file = None

            # Fallback: temp directory
            if not self._config_file:
                tmp_dir = Path(tempfile.gettempdir()) / "patch_engine"
                tmp_dir.mkdir(parents=True, exist_ok=True)
                self._config_file = tmp_dir / "config.json"
                logger.info("Using temporary config path: %s", self._config_file)

        except OSError as e:
            logger.error("Config directory unavailable, settings will not persist: %s", e)
            self._config_file = Path(tempfile.gettempdir()) / "patch_engine_config_fallback.json"

        self._config = self._load_config()

    @classmethod
    def get_instance(cls) -> "ConfigManager":
        """Get singleton instance"""
        if cls._instance is None:
            cls._instance = ConfigManager()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the singleton so the next get_instance() re-reads the environment"""
        cls._instance = None

    @property
    def config_file(self) -> Path:
        return self._config_file

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file, layered over the defaults"""
        config = self._default_config()
        if not self._config_file.exists():
            return config

        try:
            with open(self._config_file) as f:
                loaded = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Error loading config: %s", e)
            return config

        if isinstance(loaded, dict):
            impact = {**config["impact"], **loaded.get("impact", {})}
            config.update(loaded)
            config["impact"] = impact
        return config

    def _default_config(self) -> dict[str, Any]:
        """Get default configuration"""
        return {
            "workspace_root": ".",
            "backup_dir": ".patch-engine/edit-backups",
            "history_file": None,  # set to persist edit history across restarts
            "strict_mode": False,
            "context_lines": 3,
            "max_diff_cells": 4_000_000,
            "backup_retention_days": 7,
            "impact": dict(DEFAULT_IMPACT_CONFIG),
            "server": {"host": "127.0.0.1", "port": 8000},
        }

    def get_config(self) -> dict[str, Any]:
        """Get current configuration"""
        # Reload config from file to ensure we have the latest
        self._config = self._load_config()
        return self._config.copy()

    def save_config(self, config: dict[str, Any]):
        """Save configuration to file"""
        # Merge with existing config
        self._config.update(config)

        # Ensure config directory exists
        self._config_file.parent.mkdir(parents=True, exist_ok=True)

        # Write to file
        try:
            with open(self._config_file, "w") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            raise RuntimeError(f"Failed to save config: {e}")

    def get(self, key: str, default=None):
        """Get specific config value"""
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set specific config value"""
        self._config[key] = value
        self.save_config(self._config)
