from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from apps.core.contracts.policy import Actor, Decision, PolicyContext, ResourceKind, Role, TimeWindow
from apps.core.services import access_checker, field_redactor, query_scoper
from apps.core.services.filters import Filter


class PolicyEngine:
    """Single entry point for the boundary layer.

    Every method is a pure function of its arguments and the current instant;
    nothing is cached between calls.
    """

    @staticmethod
    def scope(
        actor: Actor,
        kind: ResourceKind | str,
        *,
        requested_range: TimeWindow | None = None,
        now: datetime | None = None,
    ) -> Filter:
        return query_scoper.scope_for(actor, kind, requested_range=requested_range, now=now)

    @staticmethod
    def check(context: PolicyContext, record: Mapping[str, Any] | None = None) -> Decision:
        return access_checker.check(context, record)

    @staticmethod
    def can_read(actor: Actor, kind: ResourceKind | str, record: Mapping[str, Any], *, now: datetime | None = None) -> bool:
        return access_checker.can_read(actor, kind, record, now=now)

    @staticmethod
    def can_write(
        actor: Actor,
        kind: ResourceKind | str,
        record: Mapping[str, Any] | None = None,
        *,
        now: datetime | None = None,
    ) -> bool:
        return access_checker.can_write(actor, kind, record, now=now)

    @staticmethod
    def can_delete(actor: Actor, kind: ResourceKind | str, record: Mapping[str, Any], *, now: datetime | None = None) -> bool:
        return access_checker.can_delete(actor, kind, record, now=now)

    @staticmethod
    def redact_for_read(record: Mapping[str, Any], role: Role | str, kind: ResourceKind | str) -> dict[str, Any]:
        return field_redactor.redact_for_read(record, role, kind)

    @staticmethod
    def redact_for_write(payload: Mapping[str, Any], role: Role | str, kind: ResourceKind | str) -> dict[str, Any]:
        return field_redactor.redact_for_write(payload, role, kind)
