"""
Configuration Manager - Handle backend settings persistence
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from models.transport import RetryPolicy, RetryPolicyClass, RetrySettings

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manage configuration persistence"""

    _instance = None
    _config_file = None

    def __init__(self):
        try:
            # 1st: environment variable
            config_dir = os.environ.get("REVU_CONFIG_DIR")

            # 2nd: home directory ~/.revu
            if not config_dir:
                try:
                    config_dir = os.path.expanduser("~/.revu")
                except Exception:
                    config_dir = None

            if config_dir:
                config_path = Path(config_dir)
                try:
                    config_path.mkdir(parents=True, exist_ok=True)
                    self._config_file = config_path / "config.json"
                except OSError as e:
                    logger.warning("[ConfigManager] Cannot write to %s: %s", config_dir, e)
                    self._config_file = None

            # Last resort: temp dir
            if not self._config_file:
                tmp_dir = Path(tempfile.gettempdir()) / "revu"
                tmp_dir.mkdir(parents=True, exist_ok=True)
                self._config_file = tmp_dir / "config.json"
                logger.info("[ConfigManager] Using temporary config path: %s", self._config_file)

        except OSError as e:
            logger.error("[ConfigManager] Critical error during init: %s", e)
            self._config_file = Path(tempfile.gettempdir()) / "revu_config_fallback.json"

        self._config = self._load_config()

    @classmethod
    def get_instance(cls) -> "ConfigManager":
        """Get singleton instance"""
        if cls._instance is None:
            cls._instance = ConfigManager()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Drop the singleton so the next get_instance() reloads from disk"""
        cls._instance = None

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file, layered over the defaults"""
        config = self._default_config()
        if self._config_file.exists():
            try:
                with open(self._config_file) as f:
                    stored = json.load(f)
                for key, value in stored.items():
                    if isinstance(value, dict) and isinstance(config.get(key), dict):
                        config[key] = {**config[key], **value}
                    else:
                        config[key] = value
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("[ConfigManager] Error loading config: %s", e)

        return config

    def _default_config(self) -> dict[str, Any]:
        """Get default configuration"""
        return {
            "github": {
                "apiUrl": "https://api.github.com",
                "token": "",
                "userAgent": "revu-annotations",
                "timeoutSeconds": 30,
            },
            "retry": {
                "read": {"retries": 5, "minDelay": 0.5, "maxDelay": 5.0},
                "write": {"retries": 2, "minDelay": 1.0, "maxDelay": 2.0},
                "delete": {"retries": 2, "minDelay": 1.0, "maxDelay": 2.0},
                "factor": 2.0,
                "randomize": True,
            },
            "server": {"host": "0.0.0.0", "port": 8000},
        }

    def get_config(self) -> dict[str, Any]:
        """Get current configuration"""
        # Reload config from file to ensure we have the latest
        self._config = self._load_config()
        return self._config.copy()

    def save_config(self, config: dict[str, Any]):
        """Save configuration to file"""
        self._config.update(config)
        self._config_file.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self._config_file, "w") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            raise RuntimeError(f"Failed to save config: {e}")

    def get_github_token(self) -> str:
        """Configured token, falling back to the GITHUB_TOKEN environment variable"""
        return self._config.get("github", {}).get("token") or os.environ.get("GITHUB_TOKEN", "")

    def get(self, key: str, default=None):
        """Get specific config value"""
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set specific config value"""
        self._config[key] = value
        self.save_config(self._config)


def retry_settings_from_config(config: dict[str, Any]) -> RetrySettings:
    """Build transport retry settings from the "retry" config section"""
    cfg = config.get("retry", {})
    defaults = RetrySettings()

    def _policy(policy_class: RetryPolicyClass) -> RetryPolicy:
        fallback: RetryPolicy = getattr(defaults, policy_class.value)
        section = cfg.get(policy_class.value, {})
        if not isinstance(section, dict):
            raise ValueError(f"retry.{policy_class.value} must be an object")
        return RetryPolicy(
            policy_class=policy_class,
            retries=section.get("retries", fallback.retries),
            min_delay=section.get("minDelay", fallback.min_delay),
            max_delay=section.get("maxDelay", fallback.max_delay),
        )

    return RetrySettings(
        read=_policy(RetryPolicyClass.READ),
        write=_policy(RetryPolicyClass.WRITE),
        delete=_policy(RetryPolicyClass.DELETE),
        factor=cfg.get("factor", defaults.factor),
        randomize=cfg.get("randomize", defaults.randomize),
    )
