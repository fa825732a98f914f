from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from apps.core.contracts.policy import ResourceKind, Role, TimeWindow

EVENT_WINDOW_KINDS = (
    ResourceKind.EVENT,
    ResourceKind.CONTRACT,
    ResourceKind.PERSONNEL,
    ResourceKind.REPORT,
)

# (role, kind) -> (days before now, days after now); None after now leaves the window open.
WINDOW_OFFSETS: dict[tuple[Role, ResourceKind], tuple[timedelta, timedelta | None]] = {
    **{(Role.LEADER, kind): (timedelta(days=3), timedelta(days=3)) for kind in EVENT_WINDOW_KINDS},
    (Role.COORDINATOR, ResourceKind.REPORT): (timedelta(days=180), None),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_datetime(value: object) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(raw))
        except ValueError:
            return None
    return None


def in_window(value: object, window: TimeWindow) -> bool:
    moment = coerce_datetime(value)
    if moment is None:
        return False
    if moment < as_utc(window.start):
        return False
    return window.end is None or moment <= as_utc(window.end)


def window_for(role: Role, kind: ResourceKind, now: datetime) -> TimeWindow | None:
    offsets = WINDOW_OFFSETS.get((role, kind))
    if offsets is None:
        return None
    before, after = offsets
    anchor = as_utc(now)
    return TimeWindow(start=anchor - before, end=None if after is None else anchor + after)
