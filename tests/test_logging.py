"""Tests for logging configuration."""

import pytest
import structlog

from catalog_rules.core.logging import configure_logging
from catalog_rules.core.settings import get_settings


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.mark.parametrize("log_format,renderer", [
    ("json", structlog.processors.JSONRenderer),
    ("console", structlog.dev.ConsoleRenderer),
])
def test_renderer_follows_log_format(monkeypatch, fresh_settings, log_format, renderer):
    monkeypatch.setenv("LOG_FORMAT", log_format)

    configure_logging()

    config = structlog.get_config()
    assert isinstance(config["processors"][-1], renderer)
    assert config["logger_factory"].__class__ is structlog.stdlib.LoggerFactory
