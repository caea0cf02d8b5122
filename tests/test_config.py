"""
Unit tests for settings loading and validation.

Tests strict validation and error handling for gateway settings.
"""

import os
import shutil
import tempfile

import pytest
import yaml

from salesgrow_ai.config.loader import (
    CONFIG_PATH_ENV,
    CacheSettings,
    CoachSettings,
    GatewaySettings,
    Settings,
    StoreBackend,
    load_credentials,
    load_settings,
)


class TestSettingsLoading:
    """Test settings loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "settings.yaml") -> str:
        """Write settings data to a temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_defaults_without_file(self):
        settings = load_settings(environ={})
        assert settings.cache.ttl_seconds == 300
        assert settings.cache.max_size == 500
        assert settings.gateway.default_temperature == 0.7
        assert settings.gateway.request_timeout_seconds == 60
        assert settings.coach.default_max_turns == 8
        assert settings.coach.default_culture == "taiwan"
        assert settings.storage.backend == StoreBackend.MEMORY
        assert settings.storage.usage_ledger is False

    def test_valid_file_overrides_defaults(self):
        path = self._write_config({
            "cache": {"ttl_seconds": 60, "max_size": 10},
            "coach": {"default_locale": "ja"},
            "storage": {"backend": "sqlite", "db_path": "/tmp/x.db", "usage_ledger": True},
        })
        settings = load_settings(path, environ={})
        assert settings.cache == CacheSettings(ttl_seconds=60.0, max_size=10)
        assert settings.coach.default_locale == "ja"
        assert settings.coach.default_max_turns == 8
        assert settings.storage.backend == StoreBackend.SQLITE
        assert settings.storage.usage_ledger is True

    def test_path_from_environment(self):
        path = self._write_config({"gateway": {"default_temperature": 0.3}})
        settings = load_settings(environ={CONFIG_PATH_ENV: path})
        assert settings.gateway.default_temperature == 0.3

    def test_empty_file_gives_defaults(self):
        path = os.path.join(self.temp_dir, "empty.yaml")
        open(path, 'w').close()
        assert load_settings(path, environ={}).cache.max_size == 500

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_settings(os.path.join(self.temp_dir, "missing.yaml"), environ={})

    def test_invalid_yaml(self):
        path = os.path.join(self.temp_dir, "bad.yaml")
        with open(path, 'w') as f:
            f.write("cache: [unclosed")
        with pytest.raises(yaml.YAMLError):
            load_settings(path, environ={})

    def test_unknown_section_rejected(self):
        path = self._write_config({"budget": {"daily": 1}})
        with pytest.raises(ValueError, match="Unknown settings keys"):
            load_settings(path, environ={})

    def test_unknown_field_rejected(self):
        path = self._write_config({"cache": {"ttl": 5}})
        with pytest.raises(ValueError, match="Unknown keys in cache"):
            load_settings(path, environ={})

    def test_wrong_type_rejected(self):
        path = self._write_config({"cache": {"max_size": "lots"}})
        with pytest.raises(ValueError, match="cache.max_size"):
            load_settings(path, environ={})

    def test_bool_is_not_an_integer(self):
        path = self._write_config({"coach": {"default_max_turns": True}})
        with pytest.raises(ValueError, match="must be an integer"):
            load_settings(path, environ={})

    def test_invalid_backend(self):
        path = self._write_config({"storage": {"backend": "redis"}})
        with pytest.raises(ValueError, match="must be one of"):
            load_settings(path, environ={})

    def test_section_must_be_mapping(self):
        path = self._write_config({"cache": [1, 2]})
        with pytest.raises(ValueError, match="must be a dictionary"):
            load_settings(path, environ={})


class TestSectionValidation:
    """Test value checks on the settings dataclasses."""

    def test_non_positive_cache_limits(self):
        with pytest.raises(ValueError):
            CacheSettings(ttl_seconds=0)
        with pytest.raises(ValueError):
            CacheSettings(max_size=-1)

    def test_temperature_range(self):
        with pytest.raises(ValueError):
            GatewaySettings(default_temperature=3)

    def test_coach_limits(self):
        with pytest.raises(ValueError):
            CoachSettings(default_max_turns=1)
        with pytest.raises(ValueError):
            CoachSettings(max_history_messages=1)


class TestCredentials:
    """Test credential loading."""

    def test_reads_registry_variables_only(self):
        environ = {"DEEPSEEK_API_KEY": "ds", "ANTHROPIC_API_KEY": "", "OTHER": "x"}
        assert load_credentials(environ) == {"DEEPSEEK_API_KEY": "ds"}

    def test_settings_carry_credentials(self):
        settings = load_settings(environ={"GOOGLE_AI_API_KEY": "g"})
        assert settings.api_key("GOOGLE_AI_API_KEY") == "g"
        assert settings.api_key("DEEPSEEK_API_KEY") is None

    def test_credentials_hidden_from_repr(self):
        assert "secret" not in repr(Settings(credentials={"DEEPSEEK_API_KEY": "secret"}))
