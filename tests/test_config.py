"""Tests for configuration module."""

from __future__ import annotations

import pytest

from core.config import Settings, _ENV_PROFILES, get_database_url, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_settings_dataclass():
    s = Settings(database_url="postgresql://localhost/test")
    assert s.database_url == "postgresql://localhost/test"
    assert s.app_env == "dev"
    assert s.login_rate_limit == "10/minute"
    assert s.public_announcement_limit == 50
    assert s.coach_announcement_limit == 100
    assert s.coach_reflection_limit == 200
    assert s.athlete_reflection_limit == 100


def test_settings_frozen():
    s = Settings(database_url="x")
    with pytest.raises(AttributeError):
        s.database_url = "y"


def test_settings_env_flags():
    assert Settings(database_url="x", app_env="production").is_production is True
    assert Settings(database_url="x", app_env="dev").is_dev is True
    assert Settings(database_url="x", app_env="test").is_test is True


def test_get_database_url_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://from-env/db")
    assert get_database_url() == "postgresql://from-env/db"


def test_get_database_url_default(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert get_database_url().startswith("postgresql")


def test_get_settings_uses_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://test/db")
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("BACKEND_URL", "https://team.example.co/")
    monkeypatch.setenv("BACKEND_ANON_KEY", "anon-key")
    monkeypatch.setenv("BACKEND_SERVICE_KEY", "service-key")
    monkeypatch.setenv("ORPHAN_GRACE_SECONDS", "120")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.test, https://b.test")
    s = get_settings()
    assert s.database_url == "postgresql://test/db"
    assert s.app_env == "production"
    assert s.backend_url == "https://team.example.co"
    assert s.backend_anon_key == "anon-key"
    assert s.backend_service_key == "service-key"
    assert s.orphan_grace_seconds == 120
    assert s.cors_origins == ("https://a.test", "https://b.test")
    assert s.session_cookie_secure is True


def test_env_profiles_exist():
    for name in ("dev", "test", "staging", "production"):
        assert name in _ENV_PROFILES


def test_dev_profile_debug_logging(monkeypatch):
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    s = get_settings()
    assert s.log_level == "DEBUG"
    assert s.session_cookie_secure is False


def test_test_env_always_disables_rate_limit(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
    assert get_settings().rate_limit_enabled is False


def test_unknown_env_falls_back_to_dev_profile(monkeypatch):
    monkeypatch.setenv("APP_ENV", "sandbox")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    assert get_settings().log_level == "DEBUG"
