from __future__ import annotations

import pytest

from projectflow.core.config import Settings


def test_environment_profiles_apply_defaults() -> None:
    dev = Settings(environment="development")
    assert dev.environment == "development"
    assert dev.log_level == "DEBUG"
    assert dev.reload is True
    assert dev.cache_enabled is True
    assert dev.mail_transport == "memory"

    test_profile = Settings(environment="test")
    assert test_profile.environment == "test"
    assert test_profile.log_level == "WARNING"
    assert test_profile.reload is False
    assert test_profile.cache_enabled is False

    ci_profile = Settings(environment="ci")
    assert ci_profile.log_level == "INFO"
    assert ci_profile.reload is False
    assert ci_profile.cache_enabled is True

    production = Settings(environment="production")
    assert production.log_level == "INFO"
    assert production.mail_transport == "smtp"


@pytest.mark.parametrize(("alias", "expected"), [("DEV", "development"), ("prod", "production"), ("bogus", "development")])
def test_environment_aliases_are_normalised(alias: str, expected: str) -> None:
    assert Settings(environment=alias).environment == expected


def test_environment_profile_respects_explicit_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROJECTFLOW_LOG_LEVEL", "error")
    overridden = Settings(environment="test")
    assert overridden.log_level == "ERROR"

    monkeypatch.delenv("PROJECTFLOW_LOG_LEVEL", raising=False)
    monkeypatch.setenv("PROJECTFLOW_CACHE_ENABLED", "true")
    cache_enabled = Settings(environment="test")
    assert cache_enabled.cache_enabled is True


def test_comma_separated_values_and_limits() -> None:
    settings = Settings(
        cors_allow_origins="https://a.example, https://b.example",
        cache_default_ttl_seconds=-5,
        max_upload_bytes=0,
        storage_public_base_url="http://cdn.example/storage/",
    )

    assert settings.cors_allow_origins == ["https://a.example", "https://b.example"]
    assert settings.cache_default_ttl_seconds == 0
    assert settings.max_upload_bytes == 1
    assert settings.storage_public_base_url == "http://cdn.example/storage"
