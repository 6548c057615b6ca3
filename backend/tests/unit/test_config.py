"""
Unit tests for config helpers: env parsing and config selection.
"""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import pytest

from backend import config


def test_parse_email_list_normalises_and_drops_blanks():
    assert config.parse_email_list(" Admin@FMS.com, ,boss@x.io,") == frozenset(
        {"admin@fms.com", "boss@x.io"}
    )


def test_ttl_prefers_seconds_variable(monkeypatch):
    monkeypatch.setenv("T_SECONDS", "30")
    monkeypatch.setenv("T_MINUTES", "5")
    assert config._ttl("T_SECONDS", "T_MINUTES", 60, default=timedelta(hours=1)) == timedelta(seconds=30)


def test_ttl_falls_back_to_alias_unit(monkeypatch):
    monkeypatch.delenv("T_SECONDS", raising=False)
    monkeypatch.setenv("T_MINUTES", "5")
    assert config._ttl("T_SECONDS", "T_MINUTES", 60, default=timedelta(hours=1)) == timedelta(minutes=5)


def test_ttl_garbage_uses_default(monkeypatch):
    monkeypatch.setenv("T_SECONDS", "soon")
    assert config._ttl("T_SECONDS", "T_MINUTES", 60, default=timedelta(hours=1)) == timedelta(hours=1)


def test_resolve_config_by_name_and_env(monkeypatch):
    assert config.resolve_config("testing") is config.TestingConfig
    assert config.resolve_config("nonsense") is config.DevelopmentConfig

    monkeypatch.setenv("APP_ENV", "production")
    assert config.resolve_config() is config.ProductionConfig


def _app_with(**values) -> SimpleNamespace:
    settings = {
        "SQLALCHEMY_DATABASE_URI": "postgresql://db/finledger",
        "SECRET_KEY": "s3cret",
        "JWT_SECRET_KEY": "jwt-s3cret",
        "ADMIN_EMAILS": frozenset({"admin@fms.com"}),
    }
    settings.update(values)
    return SimpleNamespace(config=settings)


def test_production_config_accepts_complete_settings():
    config.validate_production_config(_app_with())


@pytest.mark.parametrize("override", [
    {"SQLALCHEMY_DATABASE_URI": ""},
    {"JWT_SECRET_KEY": "change-me-in-production"},
    {"ADMIN_EMAILS": frozenset()},
])
def test_production_config_rejects_unsafe_settings(override):
    with pytest.raises(ValueError):
        config.validate_production_config(_app_with(**override))
