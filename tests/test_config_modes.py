from __future__ import annotations

import pytest

from apps.core.config.env import DEFAULT_SECRET_KEY, get_runtime_settings, validate_runtime_settings


def test_dev_defaults(clear_policy_env) -> None:
    settings = get_runtime_settings()

    assert settings.env == "dev"
    assert settings.runtime_profile == "local"
    assert settings.debug is True
    assert settings.secret_key == DEFAULT_SECRET_KEY
    assert settings.allowed_hosts == ("localhost", "127.0.0.1")
    assert settings.log_level == "INFO"
    assert settings.dev_identity_enabled is False
    assert validate_runtime_settings(settings) == []


def test_prod_requires_a_real_secret(clear_policy_env, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EA_ENV", "prod")

    settings = get_runtime_settings()

    assert settings.debug is False
    assert validate_runtime_settings(settings) == ["EA_SECRET_KEY must be set to a non-default value in prod"]


def test_prod_with_secret_is_clean(clear_policy_env, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EA_ENV", "prod")
    monkeypatch.setenv("EA_SECRET_KEY", "a-real-secret")
    monkeypatch.setenv("EA_RUNTIME_PROFILE", "deployed")
    monkeypatch.setenv("EA_ALLOWED_HOSTS", "admin.example.com, api.example.com")

    settings = get_runtime_settings()

    assert settings.runtime_profile == "deployed"
    assert settings.allowed_hosts == ("admin.example.com", "api.example.com")
    assert validate_runtime_settings(settings) == []


def test_unknown_profile_and_log_level_fall_back(clear_policy_env, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EA_RUNTIME_PROFILE", "staging")
    monkeypatch.setenv("EA_LOG_LEVEL", "chatty")

    settings = get_runtime_settings()

    assert settings.runtime_profile == "local"
    assert settings.log_level == "INFO"


def test_dev_identity_outside_local_is_flagged(clear_policy_env, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EA_RUNTIME_PROFILE", "deployed")
    monkeypatch.setenv("EA_DEV_IDENTITY_ENABLED", "yes")

    issues = validate_runtime_settings(get_runtime_settings())

    assert "EA_DEV_IDENTITY_ENABLED is ignored outside the local profile" in issues


def test_prod_debug_is_flagged(clear_policy_env, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EA_ENV", "prod")
    monkeypatch.setenv("EA_SECRET_KEY", "a-real-secret")
    monkeypatch.setenv("EA_DEBUG", "true")

    assert validate_runtime_settings(get_runtime_settings()) == ["EA_DEBUG must be off in prod"]
