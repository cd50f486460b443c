"""Tests for settings."""

import pytest
from pydantic import ValidationError

from catalog_rules.core.settings import Settings, get_settings


def test_defaults():
    """Defaults match the documented scheduling windows."""
    settings = Settings()

    assert settings.default_branch == "main"
    assert settings.scheduling_lead_days == 14
    assert settings.max_release_lead_days == 365
    assert settings.duplicate_title_threshold == 0.9


def test_log_level_is_normalized():
    settings = Settings(log_level="debug")
    assert settings.log_level == "DEBUG"


def test_environment_flags():
    settings = Settings(environment="test")

    assert settings.is_testing
    assert not settings.is_production
    assert not settings.is_development


@pytest.mark.parametrize("field,value", [
    ("environment", "qa"),
    ("log_level", "verbose"),
    ("log_format", "xml"),
    ("duplicate_title_threshold", 0),
])
def test_invalid_values_are_rejected(field, value):
    """Invalid settings values raise a validation error."""
    with pytest.raises(ValidationError):
        Settings(**{field: value})


def test_settings_from_environment(monkeypatch):
    """Environment variables override defaults."""
    monkeypatch.setenv("DEFAULT_BRANCH", "trunk")
    monkeypatch.setenv("SCHEDULING_LEAD_DAYS", "21")

    settings = Settings()
    assert settings.default_branch == "trunk"
    assert settings.scheduling_lead_days == 21


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
