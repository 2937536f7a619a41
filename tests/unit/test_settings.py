"""Unit tests for settings loading from defaults, environment and YAML."""

from datetime import timedelta, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from icscal.config.settings import ICSCalSettings, LoggingSettings, get_settings


class TestSettingsDefaults:
    """Test default values."""

    def test_defaults(self) -> None:
        """Test the documented defaults."""
        settings = ICSCalSettings(_env_file=None)

        assert settings.default_timezone == "UTC"
        assert settings.default_tzinfo is timezone.utc
        assert settings.duplicate_id_policy == "last"
        assert settings.max_content_bytes == 50 * 1024 * 1024
        assert settings.max_retries == 3
        assert settings.logging.console_level == "INFO"
        assert settings.logging.file_enabled is False

    def test_get_settings_is_cached(self) -> None:
        """Test that the process-wide settings object is reused."""
        assert get_settings() is get_settings()


class TestSettingsValidation:
    """Test field validators."""

    def test_offset_timezone(self) -> None:
        """Test that a literal offset becomes a fixed-offset tzinfo."""
        settings = ICSCalSettings(_env_file=None, default_timezone="-05:00")

        assert settings.default_tzinfo.utcoffset(None) == timedelta(hours=-5)

    def test_named_timezone_rejected(self) -> None:
        """Test that zone names are rejected."""
        with pytest.raises(ValidationError):
            ICSCalSettings(_env_file=None, default_timezone="Europe/Sofia")

    def test_unknown_duplicate_policy_rejected(self) -> None:
        """Test that only last, first and error are accepted."""
        with pytest.raises(ValidationError):
            ICSCalSettings(_env_file=None, duplicate_id_policy="newest")

    def test_log_level_normalized(self) -> None:
        """Test that log levels are upper-cased and VERBOSE is allowed."""
        assert LoggingSettings(console_level="verbose").console_level == "VERBOSE"

    def test_bad_log_level_rejected(self) -> None:
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            LoggingSettings(file_level="LOUD")


class TestSettingsSources:
    """Test environment and YAML sources."""

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test ICSCAL_ prefixed variables, including nested logging values."""
        monkeypatch.setenv("ICSCAL_DUPLICATE_ID_POLICY", "first")
        monkeypatch.setenv("ICSCAL_MAX_RETRIES", "7")
        monkeypatch.setenv("ICSCAL_LOGGING__CONSOLE_LEVEL", "DEBUG")

        settings = ICSCalSettings(_env_file=None)

        assert settings.duplicate_id_policy == "first"
        assert settings.max_retries == 7
        assert settings.logging.console_level == "DEBUG"

    def test_yaml_file(self, tmp_path: Path) -> None:
        """Test that YAML sections fill unset fields."""
        config_file = tmp_path / "icscal.yaml"
        config_file.write_text(
            "parser:\n"
            "  default_timezone: '+02:00'\n"
            "  duplicate_id_policy: error\n"
            "fetch:\n"
            "  request_timeout: 12\n"
            "logging:\n"
            "  console_level: warning\n",
            encoding="utf-8",
        )

        settings = ICSCalSettings(_env_file=None, config_file=config_file)

        assert settings.default_timezone == "+02:00"
        assert settings.duplicate_id_policy == "error"
        assert settings.request_timeout == 12
        assert settings.logging.console_level == "WARNING"

    def test_explicit_values_beat_yaml(self, tmp_path: Path) -> None:
        """Test that explicitly passed values are not overwritten by the file."""
        config_file = tmp_path / "icscal.yaml"
        config_file.write_text("fetch:\n  max_retries: 9\n", encoding="utf-8")

        settings = ICSCalSettings(_env_file=None, config_file=config_file, max_retries=1)

        assert settings.max_retries == 1

    def test_yaml_unknown_keys_ignored(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that unknown keys are logged and skipped."""
        config_file = tmp_path / "icscal.yaml"
        config_file.write_text("parser:\n  colour: blue\n", encoding="utf-8")

        settings = ICSCalSettings(_env_file=None, config_file=config_file)

        assert not hasattr(settings, "colour")
        assert "Unknown config key ignored: colour" in caplog.text

    def test_yaml_invalid_value_rejected(self, tmp_path: Path) -> None:
        """Test that YAML values go through field validation."""
        config_file = tmp_path / "icscal.yaml"
        config_file.write_text("parser:\n  default_timezone: Mars/Olympus\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            ICSCalSettings(_env_file=None, config_file=config_file)

    def test_missing_yaml_file(self, tmp_path: Path) -> None:
        """Test that a missing file keeps the defaults."""
        settings = ICSCalSettings(_env_file=None, config_file=tmp_path / "absent.yaml")

        assert settings.duplicate_id_policy == "last"

    def test_empty_yaml_file(self, tmp_path: Path) -> None:
        """Test that an empty file keeps the defaults."""
        config_file = tmp_path / "icscal.yaml"
        config_file.write_text("", encoding="utf-8")

        settings = ICSCalSettings(_env_file=None, config_file=config_file)

        assert settings.request_timeout == 30

    def test_yaml_sections_without_values(self, tmp_path: Path) -> None:
        """Test that bare section keys keep the defaults."""
        config_file = tmp_path / "icscal.yaml"
        config_file.write_text("parser:\nfetch:\nlogging:\n", encoding="utf-8")

        settings = ICSCalSettings(_env_file=None, config_file=config_file)

        assert settings.duplicate_id_policy == "last"
        assert settings.request_timeout == 30
        assert settings.logging == LoggingSettings()
