from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from apps.core.contracts.policy import (
    Actor,
    Decision,
    Operation,
    PolicyContext,
    ResourceKind,
)
from apps.core.services.permission_registry import RULES
from apps.core.services.policy_context import build_policy_context

Record = Mapping[str, Any]


def check(context: PolicyContext, record: Record | None) -> Decision:
    if context.operation is Operation.LIST:
        raise ValueError("list operations are scoped with query_scoper.scope, not checked per record")
    return RULES.rule_for(context.role, context.kind, context.operation)(context, record)


def check_read(actor: Actor, kind: ResourceKind | str, record: Record, *, now: datetime | None = None) -> Decision:
    return check(build_policy_context(actor, kind, Operation.READ, now=now), record)


def check_write(
    actor: Actor,
    kind: ResourceKind | str,
    record: Record | None = None,
    *,
    now: datetime | None = None,
) -> Decision:
    operation = Operation.CREATE if record is None else Operation.UPDATE
    return check(build_policy_context(actor, kind, operation, now=now), record)


def check_delete(actor: Actor, kind: ResourceKind | str, record: Record, *, now: datetime | None = None) -> Decision:
    return check(build_policy_context(actor, kind, Operation.DELETE, now=now), record)


def can_read(actor: Actor, kind: ResourceKind | str, record: Record, *, now: datetime | None = None) -> bool:
    return check_read(actor, kind, record, now=now).allowed


def can_write(
    actor: Actor,
    kind: ResourceKind | str,
    record: Record | None = None,
    *,
    now: datetime | None = None,
) -> bool:
    return check_write(actor, kind, record, now=now).allowed


def can_delete(actor: Actor, kind: ResourceKind | str, record: Record, *, now: datetime | None = None) -> bool:
    return check_delete(actor, kind, record, now=now).allowed
