"""Tests for configuration management."""

import json

from models.transport import RetryPolicyClass
from services.config_manager import ConfigManager, retry_settings_from_config


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_uses_env_config_dir(self, isolated_config) -> None:
        """REVU_CONFIG_DIR decides where config.json lives."""
        manager = ConfigManager.get_instance()
        manager.save_config({"server": {"host": "127.0.0.1", "port": 9000}})
        stored = json.loads((isolated_config / "config.json").read_text())
        assert stored["server"]["port"] == 9000

    def test_defaults(self) -> None:
        """A fresh config has GitHub and retry defaults."""
        config = ConfigManager.get_instance().get_config()
        assert config["github"]["apiUrl"] == "https://api.github.com"
        assert config["retry"]["read"]["retries"] == 5
        assert config["retry"]["write"]["maxDelay"] == 2.0

    def test_partial_file_is_layered_over_defaults(self, isolated_config) -> None:
        """Missing keys in a stored section fall back to defaults."""
        isolated_config.mkdir(parents=True, exist_ok=True)
        (isolated_config / "config.json").write_text(json.dumps({"github": {"token": "abc"}}))
        config = ConfigManager.get_instance().get_config()
        assert config["github"]["token"] == "abc"
        assert config["github"]["apiUrl"] == "https://api.github.com"

    def test_corrupt_file_falls_back_to_defaults(self, isolated_config) -> None:
        """Invalid JSON does not prevent startup."""
        isolated_config.mkdir(parents=True, exist_ok=True)
        (isolated_config / "config.json").write_text("{not json")
        assert ConfigManager.get_instance().get_config()["retry"]["delete"]["retries"] == 2

    def test_singleton(self) -> None:
        assert ConfigManager.get_instance() is ConfigManager.get_instance()

    def test_token_env_fallback(self, monkeypatch) -> None:
        """GITHUB_TOKEN is used when no token is configured."""
        monkeypatch.setenv("GITHUB_TOKEN", "from-env")
        manager = ConfigManager.get_instance()
        assert manager.get_github_token() == "from-env"

        manager.set("github", {**manager.get("github"), "token": "from-file"})
        assert manager.get_github_token() == "from-file"


class TestRetrySettingsFromConfig:
    """Tests for retry_settings_from_config."""

    def test_defaults(self) -> None:
        settings = retry_settings_from_config(ConfigManager.get_instance().get_config())
        assert settings.read.retries == 5
        assert settings.read.policy_class == RetryPolicyClass.READ
        assert (settings.delete.min_delay, settings.delete.max_delay) == (1.0, 2.0)
        assert settings.randomize is True

    def test_zeroed_delays(self) -> None:
        """Test harnesses can zero delays through config."""
        config = {
            "retry": {
                "read": {"minDelay": 0, "maxDelay": 0},
                "write": {"retries": 1, "minDelay": 0, "maxDelay": 0},
                "randomize": False,
            }
        }
        settings = retry_settings_from_config(config)
        assert settings.read.retries == 5
        assert settings.read.max_delay == 0
        assert settings.write.retries == 1
        assert settings.delete.min_delay == 1.0
        assert settings.randomize is False
