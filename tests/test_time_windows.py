from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from apps.core.contracts.policy import ResourceKind, Role, TimeWindow
from apps.core.services.time_windows import coerce_datetime, in_window, window_for


def test_leader_window_is_three_days_either_side(now: datetime) -> None:
    window = window_for(Role.LEADER, ResourceKind.PERSONNEL, now)

    assert window == TimeWindow(start=now - timedelta(days=3), end=now + timedelta(days=3))


def test_coordinator_report_window_trails_180_days(now: datetime) -> None:
    window = window_for(Role.COORDINATOR, ResourceKind.REPORT, now)

    assert window is not None
    assert window.start == now - timedelta(days=180)
    assert window.end is None


def test_roles_without_offsets_have_no_window(now: datetime) -> None:
    assert window_for(Role.ADMIN, ResourceKind.EVENT, now) is None
    assert window_for(Role.LEADER, ResourceKind.EVENT_TYPE, now) is None
    assert window_for(Role.COORDINATOR, ResourceKind.EVENT, now) is None


def test_window_tracks_the_evaluation_instant(now: datetime) -> None:
    record_date = now + timedelta(days=2)
    later = now + timedelta(days=6)

    assert in_window(record_date, window_for(Role.LEADER, ResourceKind.EVENT, now))
    assert not in_window(record_date, window_for(Role.LEADER, ResourceKind.EVENT, later))


def test_window_bounds_are_inclusive(now: datetime) -> None:
    window = TimeWindow(start=now, end=now + timedelta(days=1))

    assert in_window(now, window)
    assert in_window(now + timedelta(days=1), window)
    assert not in_window(now + timedelta(days=1, seconds=1), window)


def test_missing_or_unparseable_dates_are_outside_every_window(now: datetime) -> None:
    window = TimeWindow(start=now - timedelta(days=1))

    assert not in_window(None, window)
    assert not in_window("not-a-date", window)


def test_coerce_datetime_handles_common_shapes() -> None:
    assert coerce_datetime("2026-03-15T12:00:00Z") == datetime(2026, 3, 15, 12, tzinfo=timezone.utc)
    assert coerce_datetime(date(2026, 3, 15)) == datetime(2026, 3, 15, tzinfo=timezone.utc)
    assert coerce_datetime(datetime(2026, 3, 15)) == datetime(2026, 3, 15, tzinfo=timezone.utc)
    assert coerce_datetime("") is None
    assert coerce_datetime(12) is None


def test_time_window_rejects_start_after_end(now: datetime) -> None:
    with pytest.raises(ValueError):
        TimeWindow(start=now, end=now - timedelta(seconds=1))
