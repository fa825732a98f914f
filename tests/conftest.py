from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import django
import pytest
from django.test.utils import setup_test_environment

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"

if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "eventadmin.settings")
django.setup()
setup_test_environment()

from apps.core.contracts.policy import Actor, Role  # noqa: E402

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def admin() -> Actor:
    return Actor(id="A1", role=Role.ADMIN)


@pytest.fixture()
def coordinator() -> Actor:
    return Actor(id="C1", role=Role.COORDINATOR, assigned_event_ids=frozenset({"E1"}))


@pytest.fixture()
def leader() -> Actor:
    return Actor(id="L1", role=Role.LEADER, assigned_event_ids=frozenset({"E1"}))


@pytest.fixture()
def staff() -> Actor:
    return Actor(id="U1", role=Role.STAFF, associated_event_ids=frozenset({"E3"}))


@pytest.fixture()
def supplier() -> Actor:
    return Actor(id="S1", role=Role.SUPPLIER, associated_event_ids=frozenset({"E3"}))


@pytest.fixture()
def clear_policy_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "EA_ENV",
        "EA_RUNTIME_PROFILE",
        "EA_DEBUG",
        "EA_SECRET_KEY",
        "EA_ALLOWED_HOSTS",
        "EA_LOG_LEVEL",
        "EA_DEV_IDENTITY_ENABLED",
        "EA_DEV_USER",
        "EA_DEV_ROLE",
        "EA_DEV_ASSIGNED_EVENTS",
        "EA_DEV_ASSOCIATED_EVENTS",
    ):
        monkeypatch.delenv(key, raising=False)
