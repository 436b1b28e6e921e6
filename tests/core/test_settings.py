"""
Tests for runtime settings.

Tests cover:
- Defaults
- Environment overrides, including nested locators
- Validation failures surfacing as ConfigError
"""

import os

import pytest

from reportspine.core.errors import ConfigError
from reportspine.core.settings import LocatorConfig, ReportSpineSettings, get_settings
from reportspine.sources.locator import SourceLocator


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Run every test without a stray .env or REPORTSPINE_ variables."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("REPORTSPINE_"):
            monkeypatch.delenv(key, raising=False)


class TestDefaults:
    """Default values."""

    def test_retry_and_refresh_defaults(self):
        settings = ReportSpineSettings()
        assert settings.max_attempts == 3
        assert settings.base_delay_ms == 1000
        assert settings.min_usable_successes == 2
        assert settings.required_sources is None
        assert settings.log_level == "INFO"
        assert settings.locators == {}

    def test_locator_for_unknown_source(self):
        assert ReportSpineSettings().locator_for("analytics") is None


class TestEnvironment:
    """Environment-driven configuration."""

    def test_scalar_override(self, monkeypatch):
        monkeypatch.setenv("REPORTSPINE_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("REPORTSPINE_API_KEY", "secret")
        settings = get_settings(_force_reload=True)
        assert settings.max_attempts == 5
        assert settings.api_key == "secret"

    def test_nested_locator(self, monkeypatch):
        monkeypatch.setenv("REPORTSPINE_LOCATORS__ANALYTICS__SPREADSHEET_ID", " 1AbC ")
        monkeypatch.setenv("REPORTSPINE_LOCATORS__ANALYTICS__TAB", "GA4")
        settings = get_settings(_force_reload=True)
        assert settings.locator_for("analytics") == SourceLocator("1AbC", "GA4")

    def test_required_sources_from_json(self, monkeypatch):
        monkeypatch.setenv("REPORTSPINE_REQUIRED_SOURCES", '["performance_metrics"]')
        settings = get_settings(_force_reload=True)
        assert settings.required_sources == ["performance_metrics"]

    def test_invalid_value_raises_config_error(self, monkeypatch):
        monkeypatch.setenv("REPORTSPINE_MAX_ATTEMPTS", "0")
        with pytest.raises(ConfigError) as exc_info:
            get_settings(_force_reload=True)
        assert "REPORTSPINE_MAX_ATTEMPTS" in str(exc_info.value)

    def test_settings_are_cached(self):
        first = get_settings(_force_reload=True)
        assert get_settings() is first


class TestLocatorConfig:
    """LocatorConfig -> SourceLocator."""

    def test_to_locator_trims(self):
        locator = LocatorConfig(spreadsheet_id=" id ", tab=" Tab ").to_locator()
        assert locator == SourceLocator("id", "Tab")
        assert locator.is_complete

    def test_blank_config_is_incomplete(self):
        assert not LocatorConfig().to_locator().is_complete
