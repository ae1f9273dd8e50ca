"""Tests for settings and logging configuration."""

import logging
from pathlib import Path

import pytest
import structlog

from kardex.config import configure_logging, get_logger, get_settings, reset_settings


class TestSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings.valuation.epsilon == 0.01
        assert settings.valuation.currency_decimals == 2
        assert settings.valuation.use_snapshots is True
        assert settings.valuation.require_inbound_cost is True
        assert settings.valuation.quantity_tolerance == 1e-9
        assert settings.storage.db_name == "kardex.db"

    def test_singleton(self):
        assert get_settings() is get_settings()

    def test_env_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "shop2"))
        monkeypatch.setenv("STORAGE_DB_NAME", "shop2.db")
        monkeypatch.setenv("VALUATION_USE_SNAPSHOTS", "false")
        monkeypatch.setenv("VALUATION_EPSILON", "0.5")
        reset_settings()

        settings = get_settings()

        assert settings.storage.db_path == tmp_path / "shop2" / "shop2.db"
        assert settings.valuation.use_snapshots is False
        assert settings.valuation.epsilon == 0.5

    def test_epsilon_must_be_positive(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("VALUATION_EPSILON", "0")
        reset_settings()
        with pytest.raises(ValueError):
            get_settings()


class TestLogging:
    def test_configure_logging(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        reset_settings()

        configure_logging()

        assert logging.getLogger("aiosqlite").level == logging.WARNING
        assert get_logger(__name__) is not None
        structlog.reset_defaults()
