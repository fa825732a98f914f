from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class RuntimeSettings:
    env: str
    runtime_profile: str
    debug: bool
    secret_key: str
    allowed_hosts: tuple[str, ...]
    log_level: str
    dev_identity_enabled: bool
    dev_user: str
    dev_role: str
    dev_assigned_events: str
    dev_associated_events: str


TRUE_VALUES = {"1", "true", "yes", "y", "on"}
RUNTIME_PROFILES = {"local", "deployed"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
DEFAULT_SECRET_KEY = "dev-not-secure-change-me"


def _env(name: str, default: str = "") -> str:
    return str(os.getenv(name, default)).strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name, "1" if default else "0").lower()
    return raw in TRUE_VALUES


def get_runtime_settings() -> RuntimeSettings:
    env = _env("EA_ENV", "dev")
    profile = _env("EA_RUNTIME_PROFILE", "local").lower()
    if profile not in RUNTIME_PROFILES:
        profile = "local"

    hosts = tuple(host.strip() for host in _env("EA_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if host.strip())

    log_level = _env("EA_LOG_LEVEL", "INFO").upper()
    if log_level not in LOG_LEVELS:
        log_level = "INFO"

    return RuntimeSettings(
        env=env,
        runtime_profile=profile,
        debug=_env_bool("EA_DEBUG", env != "prod"),
        secret_key=_env("EA_SECRET_KEY", DEFAULT_SECRET_KEY),
        allowed_hosts=hosts,
        log_level=log_level,
        dev_identity_enabled=_env_bool("EA_DEV_IDENTITY_ENABLED", False),
        dev_user=_env("EA_DEV_USER"),
        dev_role=_env("EA_DEV_ROLE"),
        dev_assigned_events=_env("EA_DEV_ASSIGNED_EVENTS"),
        dev_associated_events=_env("EA_DEV_ASSOCIATED_EVENTS"),
    )


def validate_runtime_settings(settings: RuntimeSettings) -> list[str]:
    issues: list[str] = []
    if settings.env == "prod" and (not settings.secret_key or settings.secret_key == DEFAULT_SECRET_KEY):
        issues.append("EA_SECRET_KEY must be set to a non-default value in prod")

    if settings.runtime_profile == "deployed" and settings.dev_identity_enabled:
        issues.append("EA_DEV_IDENTITY_ENABLED is ignored outside the local profile")

    if settings.env == "prod" and settings.debug:
        issues.append("EA_DEBUG must be off in prod")

    return issues
