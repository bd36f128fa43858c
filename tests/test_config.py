"""
Tests for configuration module.

Tests settings loading, validation, and environment variable overrides.
"""

from pathlib import Path

import pytest
import yaml

from version_vault.config import (
    Settings,
    EscalationSettings,
    WindowingSettings,
    ValidationSettings,
    AnomalySettings,
    LLMSettings,
    StorageSettings,
    BatchSettings,
    load_config,
    get_settings,
    reset_settings,
)
from version_vault.core.exceptions import ConfigurationError


class TestSettings:
    """Tests for Settings model."""

    def test_default_settings_valid(self):
        """Default settings should be valid."""
        settings = Settings()

        assert settings.escalation.max_attempts == 4
        assert settings.escalation.base_delay_ms == 2000
        assert settings.escalation.max_delay_ms == 16000
        assert settings.storage.wal_mode is True
        assert settings.batch.batch_size == 3

    def test_escalation_settings_validation(self):
        """Escalation settings should validate constraints."""
        escalation = EscalationSettings(max_attempts=6, base_delay_ms=500)
        assert escalation.max_attempts == 6

        with pytest.raises(ValueError):
            EscalationSettings(max_attempts=0)

    def test_windowing_defaults(self):
        """Windowing budgets match the prompt sizes."""
        windowing = WindowingSettings()

        assert windowing.version_page_max_chars == 30000
        assert windowing.main_site_max_chars == 20000
        assert windowing.window_size == 5000
        assert windowing.max_windows == 5
        assert windowing.version_first is False

    def test_validation_and_anomaly_thresholds(self):
        """Thresholds default to the tuned constants."""
        validation = ValidationSettings()
        anomaly = AnomalySettings()

        assert (validation.far_distance, validation.far_confidence_cap) == (500, 60)
        assert (validation.near_distance, validation.near_confidence_cap) == (200, 80)
        assert validation.min_valid_confidence == 70
        assert validation.product_missing_cap == 50
        assert anomaly.major_jump_threshold == 5
        assert anomaly.confidence_drop_threshold == 30

    def test_storage_path_coerced(self):
        """String database paths become Path objects."""
        storage = StorageSettings(database_path="data/test.db")
        assert isinstance(storage.database_path, Path)

    def test_settings_nested_override(self):
        """Nested settings can be overridden."""
        settings = Settings(
            escalation={"max_attempts": 2},
            batch={"batch_size": 5},
        )

        assert settings.escalation.max_attempts == 2
        assert settings.batch.batch_size == 5
        # Non-overridden should keep defaults
        assert settings.batch.delay_seconds == 2.0

    def test_unknown_section_rejected(self):
        """Typos in section names should not pass silently."""
        with pytest.raises(ValueError):
            Settings(crawler={"max_pages": 5})


class TestConfigLoader:
    """Tests for configuration loading."""

    def test_load_config_defaults(self):
        """Loading without file should use defaults."""
        settings = load_config(config_path=None)

        assert isinstance(settings, Settings)
        assert settings.llm.model_name == "gpt-4o"

    def test_load_config_from_yaml(self, temp_dir: Path):
        """Configuration should load from YAML file."""
        config_path = temp_dir / "config.yaml"
        config_data = {
            "escalation": {"max_attempts": 3},
            "windowing": {"version_first": True},
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        settings = load_config(config_path)

        assert settings.escalation.max_attempts == 3
        assert settings.windowing.version_first is True

    def test_load_config_env_override(self, monkeypatch, temp_dir: Path):
        """Environment variables should override file settings."""
        config_path = temp_dir / "config.yaml"
        config_path.write_text("escalation:\n  max_attempts: 3\n")
        monkeypatch.setenv("VERSION_VAULT__ESCALATION__MAX_ATTEMPTS", "7")
        monkeypatch.setenv("VERSION_VAULT__ESCALATION__ROTATE_USER_AGENT", "false")

        settings = load_config(config_path)

        assert settings.escalation.max_attempts == 7
        assert settings.escalation.rotate_user_agent is False

    def test_load_config_invalid_yaml(self, temp_dir: Path):
        """Invalid YAML should raise ConfigurationError."""
        config_path = temp_dir / "invalid.yaml"
        config_path.write_text("{ invalid yaml content")

        with pytest.raises(ConfigurationError):
            load_config(config_path)

    def test_load_config_invalid_values(self, temp_dir: Path):
        """Out-of-range values should raise ConfigurationError."""
        config_path = temp_dir / "config.yaml"
        config_path.write_text("batch:\n  batch_size: 0\n")

        with pytest.raises(ConfigurationError):
            load_config(config_path)

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(FileNotFoundError):
            load_config(temp_dir / "missing.yaml")

    def test_get_settings_cached(self):
        """get_settings should return the same instance until reset."""
        reset_settings()
        try:
            first = get_settings()
            assert get_settings() is first
            reset_settings()
            assert get_settings() is not first
        finally:
            reset_settings()


class TestLLMSettings:
    """Tests for completion service configuration."""

    def test_defaults(self):
        llm = LLMSettings()
        assert llm.api_key_env_var == "OPENAI_API_KEY"

    def test_temperature_validation(self):
        """Temperature should be between 0 and 2."""
        assert LLMSettings(temperature=0.5).temperature == 0.5

        with pytest.raises(ValueError):
            LLMSettings(temperature=3.0)


class TestBatchSettings:
    def test_batch_size_bounds(self):
        with pytest.raises(ValueError):
            BatchSettings(batch_size=0)
