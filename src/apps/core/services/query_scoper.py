from __future__ import annotations

from datetime import datetime

from apps.core.contracts.policy import Actor, Operation, PolicyContext, ResourceKind, TimeWindow
from apps.core.services.filters import Filter
from apps.core.services.permission_registry import RULES
from apps.core.services.policy_context import build_policy_context


def scope(context: PolicyContext) -> Filter:
    return RULES.rule_for(context.role, context.kind, Operation.LIST)(context, None)


def scope_for(
    actor: Actor,
    kind: ResourceKind | str,
    *,
    requested_range: TimeWindow | None = None,
    now: datetime | None = None,
) -> Filter:
    context = build_policy_context(actor, kind, Operation.LIST, requested_range=requested_range, now=now)
    return scope(context)
