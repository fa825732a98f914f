from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from apps.core.contracts.errors import InvalidResourceKind, UnknownRole
from apps.core.contracts.policy import Actor, Operation, PolicyContext, ResourceKind, Role, TimeWindow
from apps.core.services.time_windows import as_utc, coerce_datetime, utc_now

# Spellings seen in stored sessions; compared after case folding and accent stripping.
ROLE_ALIASES: dict[str, Role] = {
    "admin": Role.ADMIN,
    "administrator": Role.ADMIN,
    "administrador": Role.ADMIN,
    "coordinator": Role.COORDINATOR,
    "coordinador": Role.COORDINATOR,
    "leader": Role.LEADER,
    "lider": Role.LEADER,
    "staff": Role.STAFF,
    "personal": Role.STAFF,
    "supplier": Role.SUPPLIER,
    "proveedor": Role.SUPPLIER,
}

_KIND_LOOKUP: dict[str, ResourceKind] = {
    kind.value.casefold(): kind for kind in ResourceKind
}


def _fold(raw: str) -> str:
    decomposed = unicodedata.normalize("NFKD", raw.strip())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def role_spellings(role: Role) -> frozenset[str]:
    return frozenset(alias for alias, target in ROLE_ALIASES.items() if target is role)


def coerce_role(raw: object) -> Role | None:
    if isinstance(raw, Role):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    return ROLE_ALIASES.get(_fold(raw))


def normalize_role(raw: object) -> Role:
    role = coerce_role(raw)
    if role is None:
        raise UnknownRole(raw)
    return role


def parse_kind(raw: object) -> ResourceKind:
    if isinstance(raw, ResourceKind):
        return raw
    if not isinstance(raw, str):
        raise InvalidResourceKind(raw)
    key = raw.strip().replace("_", "").replace("-", "").casefold()
    kind = _KIND_LOOKUP.get(key)
    if kind is None:
        raise InvalidResourceKind(raw)
    return kind


def parse_operation(raw: object) -> Operation:
    if isinstance(raw, Operation):
        return raw
    try:
        return Operation(str(raw).strip().lower())
    except ValueError:
        raise InvalidResourceKind(raw, "unknown operation") from None


def normalize_id_set(value: object) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, Iterable):
        items = value
    else:
        items = (value,)
    return frozenset(str(item).strip() for item in items if str(item).strip())


def build_actor(claims: Mapping[str, Any]) -> Actor:
    return Actor(
        id=str(claims.get("id") or "").strip(),
        role=normalize_role(claims.get("role")),
        assigned_event_ids=normalize_id_set(claims.get("assigned_event_ids")),
        associated_event_ids=normalize_id_set(claims.get("associated_event_ids")),
    )


def build_time_range(start: object = None, end: object = None) -> TimeWindow | None:
    start_at = coerce_datetime(start)
    end_at = coerce_datetime(end)
    if start_at is None and end_at is None:
        return None
    return TimeWindow(start=start_at or datetime.min.replace(tzinfo=end_at.tzinfo), end=end_at)


def build_policy_context(
    claims: Mapping[str, Any] | Actor,
    kind: object,
    operation: object = Operation.LIST,
    *,
    requested_range: TimeWindow | None = None,
    now: datetime | None = None,
) -> PolicyContext:
    actor = claims if isinstance(claims, Actor) else build_actor(claims)
    return PolicyContext(
        actor=actor,
        kind=parse_kind(kind),
        operation=parse_operation(operation),
        now=as_utc(now) if now is not None else utc_now(),
        requested_range=requested_range,
    )
