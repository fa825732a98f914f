from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from apps.core.contracts.policy import ResourceKind, Role
from apps.core.services.permission_registry import RULES
from apps.core.services.policy_context import normalize_role, parse_kind


def redact_for_read(record: Mapping[str, Any], role: Role | str, kind: ResourceKind | str) -> dict[str, Any]:
    return RULES.read_projection(normalize_role(role), parse_kind(kind)).apply(record)


def redact_for_write(payload: Mapping[str, Any], role: Role | str, kind: ResourceKind | str) -> dict[str, Any]:
    return RULES.write_projection(normalize_role(role), parse_kind(kind)).apply(payload)


def dropped_write_fields(payload: Mapping[str, Any], role: Role | str, kind: ResourceKind | str) -> list[str]:
    kept = redact_for_write(payload, role, kind)
    return sorted(key for key in payload if key not in kept)
