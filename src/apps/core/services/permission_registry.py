from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from itertools import product
from types import MappingProxyType
from typing import Any, Union

from apps.core.contracts.errors import InvalidResourceKind
from apps.core.contracts.policy import (
    ALLOW,
    Decision,
    Deny,
    DenyReason,
    Operation,
    PolicyContext,
    READ_ONLY_ROLES,
    ResourceKind,
    Role,
)
from apps.core.services.field_catalog import (
    ADMIN_ASSIGNED_FIELDS,
    COORDINATOR_LOCKED_FIELDS,
    COORDINATOR_PROVIDER_CATEGORIES,
    COORDINATOR_REPORT_TYPES,
    CREDENTIAL_FIELDS,
    LEADER_HIDDEN_PROVIDER_CATEGORIES,
    MINIMAL_PROJECTION,
    SERVER_MANAGED_FIELDS,
    DropFields,
    KeepFields,
    KindDescriptor,
    Projection,
    descriptor_for,
)
from apps.core.services.filters import (
    CALLER_ORIGIN,
    DEFAULT_ORIGIN,
    MATCH_ALL,
    ROLE_ORIGIN,
    DateRange,
    Equals,
    Filter,
    NotEquals,
    NotIn,
    all_of,
    any_of,
    in_set,
)
from apps.core.services.policy_context import coerce_role, role_spellings
from apps.core.services.time_windows import in_window, window_for

LOGGER = logging.getLogger("eventadmin.policy")

Record = Mapping[str, Any]
RuleResult = Union[Decision, Filter]
Rule = Callable[[PolicyContext, Union[Record, None]], RuleResult]
RuleKey = tuple[Role, ResourceKind, Operation]

EVENT_NOT_ASSIGNED = Deny(DenyReason.EVENT_NOT_ASSIGNED)
OUT_OF_WINDOW = Deny(DenyReason.OUT_OF_WINDOW)
NOT_OWNER = Deny(DenyReason.NOT_OWNER)
ROLE_INSUFFICIENT = Deny(DenyReason.ROLE_INSUFFICIENT)


class RuleRegistry:
    """(role, kind, operation) -> rule, plus (role, kind) -> read/write projections.

    Populated once by ``build_default_registry`` and frozen; lookups for a
    combination that was never registered fail closed with ``InvalidResourceKind``.
    """

    def __init__(self) -> None:
        self._rules: dict[RuleKey, Rule] = {}
        self._read: dict[tuple[Role, ResourceKind], Projection] = {}
        self._write: dict[tuple[Role, ResourceKind], Projection] = {}
        self._frozen = False

    def register(
        self,
        roles: Iterable[Role],
        kinds: Iterable[ResourceKind],
        operations: Iterable[Operation],
    ) -> Callable[[Rule], Rule]:
        keys = list(product(tuple(roles), tuple(kinds), tuple(operations)))

        def decorator(rule: Rule) -> Rule:
            for key in keys:
                self._put(self._rules, key, rule)
            return rule

        return decorator

    def register_projections(
        self,
        roles: Iterable[Role],
        kinds: Iterable[ResourceKind],
        *,
        read: Callable[[Role, KindDescriptor], Projection],
        write: Callable[[Role, KindDescriptor], Projection],
    ) -> None:
        for role, kind in product(tuple(roles), tuple(kinds)):
            descriptor = descriptor_for(kind)
            self._put(self._read, (role, kind), read(role, descriptor))
            self._put(self._write, (role, kind), write(role, descriptor))

    def _put(self, table: dict, key: tuple, value: Any) -> None:
        if self._frozen:
            raise RuntimeError("rule registry is frozen")
        if key in table:
            raise ValueError(f"duplicate policy registration for {key}")
        table[key] = value

    def freeze(self) -> RuleRegistry:
        missing = self.missing()
        if missing:
            raise RuntimeError(f"incomplete policy registry, missing {len(missing)} entries: {missing[:5]}")
        self._rules = MappingProxyType(self._rules)
        self._read = MappingProxyType(self._read)
        self._write = MappingProxyType(self._write)
        self._frozen = True
        return self

    def missing(self) -> list[tuple]:
        gaps: list[tuple] = []
        for key in product(Role, ResourceKind, Operation):
            if key not in self._rules:
                gaps.append(key)
        for key in product(Role, ResourceKind):
            if key not in self._read or key not in self._write:
                gaps.append(key)
        return gaps

    def rule_for(self, role: Role, kind: ResourceKind, operation: Operation) -> Rule:
        try:
            return self._rules[(role, kind, operation)]
        except KeyError:
            raise InvalidResourceKind(kind, f"no {operation} rule for role {role}") from None

    def read_projection(self, role: Role, kind: ResourceKind) -> Projection:
        try:
            return self._read[(role, kind)]
        except KeyError:
            raise InvalidResourceKind(kind, f"no read projection for role {role}") from None

    def write_projection(self, role: Role, kind: ResourceKind) -> Projection:
        try:
            return self._write[(role, kind)]
        except KeyError:
            raise InvalidResourceKind(kind, f"no write projection for role {role}") from None

    def keys(self) -> list[RuleKey]:
        return list(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


# Shared clause builders. List filters and single-record checks are both
# derived from these so the two views cannot drift apart.


def is_owner(context: PolicyContext, record: Record | None) -> bool:
    if record is None or not context.actor.id:
        return False
    created_by = record.get("createdBy")
    return created_by is not None and str(created_by) == context.actor.id


def owner_clause(context: PolicyContext) -> Filter:
    if not context.actor.id:
        return in_set("createdBy", ())
    return Equals("createdBy", context.actor.id)


def role_window_clause(context: PolicyContext, descriptor: KindDescriptor, origin: str) -> Filter | None:
    window = window_for(context.role, context.kind, context.now)
    if window is None or descriptor.date_field is None:
        return None
    return DateRange(descriptor.date_field, window.start, window.end, origin=origin)


def coordinator_visibility(context: PolicyContext, descriptor: KindDescriptor) -> Filter:
    kind = context.kind
    actor = context.actor
    if kind is ResourceKind.REPORT:
        return any_of(
            in_set(descriptor.category_field, COORDINATOR_REPORT_TYPES),
            owner_clause(context),
            in_set(descriptor.event_field, actor.assigned_event_ids),
        )
    if kind is ResourceKind.PROVIDER:
        return any_of(
            all_of(
                in_set(descriptor.category_field, COORDINATOR_PROVIDER_CATEGORIES),
                Equals(descriptor.active_field, True),
            ),
            owner_clause(context),
        )
    if kind is ResourceKind.PROVIDER_TYPE:
        return any_of(in_set(descriptor.category_field, COORDINATOR_PROVIDER_CATEGORIES), owner_clause(context))
    if kind is ResourceKind.USER:
        return any_of(NotIn("role", role_spellings(Role.ADMIN), ignore_case=True), Equals("id", actor.id))
    return MATCH_ALL


def team_clause(context: PolicyContext, descriptor: KindDescriptor) -> Filter | None:
    if descriptor.team_field is None or not context.actor.id:
        return None
    return Equals(descriptor.team_field, context.actor.id)


def leader_visibility(context: PolicyContext, descriptor: KindDescriptor) -> Filter:
    if context.kind is ResourceKind.USER:
        return Equals("id", context.actor.id)
    if descriptor.is_event_bearing:
        assigned = all_of(
            in_set(descriptor.event_field, context.actor.assigned_event_ids),
            role_window_clause(context, descriptor, ROLE_ORIGIN),
        )
        team = team_clause(context, descriptor)
        return assigned if team is None else any_of(assigned, team)
    clauses: list[Filter] = [Equals(descriptor.active_field, True)]
    if context.kind is ResourceKind.PROVIDER_TYPE:
        clauses.extend(NotEquals(descriptor.category_field, value) for value in sorted(LEADER_HIDDEN_PROVIDER_CATEGORIES))
    return all_of(*clauses)


def associate_visibility(context: PolicyContext, descriptor: KindDescriptor) -> Filter:
    if context.kind is ResourceKind.USER:
        return any_of(owner_clause(context), Equals("id", context.actor.id))
    if descriptor.event_field is None:
        return owner_clause(context)
    return any_of(owner_clause(context), in_set(descriptor.event_field, context.actor.associated_event_ids))


def leader_event_decision(context: PolicyContext, descriptor: KindDescriptor, record: Record) -> Decision:
    event_id = record.get(descriptor.event_field)
    if event_id is None or str(event_id) not in context.actor.assigned_event_ids:
        return EVENT_NOT_ASSIGNED
    window = window_for(context.role, context.kind, context.now)
    if window is not None and not in_window(record.get(descriptor.date_field), window):
        return OUT_OF_WINDOW
    return ALLOW


def targets_admin_user(context: PolicyContext, record: Record | None) -> bool:
    return context.kind is ResourceKind.USER and record is not None and coerce_role(record.get("role")) is Role.ADMIN


def with_owner_shortcut(rule: Rule) -> Rule:
    def wrapped(context: PolicyContext, record: Record | None) -> RuleResult:
        if is_owner(context, record):
            return ALLOW
        return rule(context, record)

    wrapped.__name__ = getattr(rule, "__name__", "rule")
    return wrapped


def build_default_registry() -> RuleRegistry:
    registry = RuleRegistry()
    all_kinds = tuple(ResourceKind)
    associates = tuple(READ_ONLY_ROLES)

    # admin

    @registry.register([Role.ADMIN], all_kinds, [Operation.LIST])
    def admin_list(context: PolicyContext, record: Record | None) -> Filter:
        return MATCH_ALL

    @registry.register([Role.ADMIN], all_kinds, [Operation.READ, Operation.CREATE, Operation.UPDATE, Operation.DELETE])
    def admin_allow(context: PolicyContext, record: Record | None) -> Decision:
        return ALLOW

    # coordinator

    @registry.register([Role.COORDINATOR], all_kinds, [Operation.LIST])
    def coordinator_list(context: PolicyContext, record: Record | None) -> Filter:
        descriptor = descriptor_for(context.kind)
        visible = coordinator_visibility(context, descriptor)
        if context.kind is not ResourceKind.REPORT:
            return visible
        requested = context.requested_range
        if requested is not None:
            date_clause = DateRange(descriptor.date_field, requested.start, requested.end, origin=CALLER_ORIGIN)
        else:
            date_clause = role_window_clause(context, descriptor, DEFAULT_ORIGIN)
        return all_of(visible, date_clause)

    # admin-account guard runs before the owner shortcut
    @registry.register([Role.COORDINATOR], all_kinds, [Operation.READ])
    def coordinator_read(context: PolicyContext, record: Record | None) -> Decision:
        if record is None:
            return ROLE_INSUFFICIENT
        if targets_admin_user(context, record):
            return Deny(DenyReason.ROLE_INSUFFICIENT, "admin accounts are managed by admins")
        if is_owner(context, record):
            return ALLOW
        if coordinator_visibility(context, descriptor_for(context.kind)).matches(record):
            return ALLOW
        return ROLE_INSUFFICIENT

    @registry.register([Role.COORDINATOR], all_kinds, [Operation.CREATE])
    def coordinator_create(context: PolicyContext, record: Record | None) -> Decision:
        if context.kind is ResourceKind.PROVIDER_TYPE:
            return Deny(DenyReason.ROLE_INSUFFICIENT, "provider types are managed by admins")
        if targets_admin_user(context, record):
            return Deny(DenyReason.ROLE_INSUFFICIENT, "admin accounts are managed by admins")
        return ALLOW

    @registry.register([Role.COORDINATOR], all_kinds, [Operation.UPDATE])
    def coordinator_update(context: PolicyContext, record: Record | None) -> Decision:
        if record is None:
            return ROLE_INSUFFICIENT
        guard = coordinator_create(context, record)
        if not guard.allowed:
            return guard
        return coordinator_read(context, record)

    # leader

    @registry.register([Role.LEADER], all_kinds, [Operation.LIST])
    def leader_list(context: PolicyContext, record: Record | None) -> Filter:
        descriptor = descriptor_for(context.kind)
        visible = any_of(owner_clause(context), leader_visibility(context, descriptor))
        requested = context.requested_range
        if requested is None or descriptor.date_field is None:
            return visible
        # narrows the role window, never widens it
        return all_of(visible, DateRange(descriptor.date_field, requested.start, requested.end, origin=CALLER_ORIGIN))

    @registry.register([Role.LEADER], all_kinds, [Operation.READ])
    @with_owner_shortcut
    def leader_read(context: PolicyContext, record: Record | None) -> Decision:
        if record is None:
            return ROLE_INSUFFICIENT
        descriptor = descriptor_for(context.kind)
        if context.kind is ResourceKind.USER:
            return ALLOW if str(record.get("id", "")) == context.actor.id else NOT_OWNER
        if descriptor.is_event_bearing:
            team = team_clause(context, descriptor)
            if team is not None and team.matches(record):
                return ALLOW
            return leader_event_decision(context, descriptor, record)
        if leader_visibility(context, descriptor).matches(record):
            return ALLOW
        return ROLE_INSUFFICIENT

    @registry.register([Role.LEADER], all_kinds, [Operation.CREATE])
    def leader_create(context: PolicyContext, record: Record | None) -> Decision:
        return ROLE_INSUFFICIENT

    @registry.register([Role.LEADER], all_kinds, [Operation.UPDATE])
    @with_owner_shortcut
    def leader_update(context: PolicyContext, record: Record | None) -> Decision:
        descriptor = descriptor_for(context.kind)
        if record is None or not descriptor.is_event_bearing:
            return ROLE_INSUFFICIENT
        return leader_event_decision(context, descriptor, record)

    # staff / supplier

    @registry.register(associates, all_kinds, [Operation.LIST])
    def associate_list(context: PolicyContext, record: Record | None) -> Filter:
        return associate_visibility(context, descriptor_for(context.kind))

    @registry.register(associates, all_kinds, [Operation.READ])
    @with_owner_shortcut
    def associate_read(context: PolicyContext, record: Record | None) -> Decision:
        if record is not None and associate_visibility(context, descriptor_for(context.kind)).matches(record):
            return ALLOW
        return NOT_OWNER

    @registry.register(associates, all_kinds, [Operation.CREATE, Operation.UPDATE])
    def associate_write(context: PolicyContext, record: Record | None) -> Decision:
        return Deny(DenyReason.ROLE_INSUFFICIENT, f"{context.role.value} accounts are read-only")

    # delete is admin-only for every kind; ownership never grants it

    @registry.register([Role.COORDINATOR, Role.LEADER, *associates], all_kinds, [Operation.DELETE])
    def non_admin_delete(context: PolicyContext, record: Record | None) -> Decision:
        return Deny(DenyReason.ROLE_INSUFFICIENT, "only admins may delete records")

    # field projections

    registry.register_projections(
        [Role.ADMIN],
        all_kinds,
        read=lambda role, d: DropFields(CREDENTIAL_FIELDS),
        write=lambda role, d: DropFields(SERVER_MANAGED_FIELDS),
    )
    registry.register_projections(
        [Role.COORDINATOR, Role.LEADER],
        all_kinds,
        read=lambda role, d: DropFields(CREDENTIAL_FIELDS | d.admin_only | d.hidden_for(role)),
        write=_tiered_write_projection,
    )
    registry.register_projections(
        associates,
        all_kinds,
        read=lambda role, d: KeepFields(MINIMAL_PROJECTION | ({d.date_field} if d.date_field else frozenset())),
        write=lambda role, d: KeepFields(frozenset()),
    )

    registry.freeze()
    LOGGER.debug("policy_registry_built rules=%s", len(registry))
    return registry


def _tiered_write_projection(role: Role, descriptor: KindDescriptor) -> Projection:
    if role is Role.LEADER:
        return KeepFields(descriptor.leader_writable - SERVER_MANAGED_FIELDS)
    if descriptor.coordinator_writable is not None:
        return KeepFields(descriptor.coordinator_writable - SERVER_MANAGED_FIELDS - COORDINATOR_LOCKED_FIELDS)
    return DropFields(
        SERVER_MANAGED_FIELDS
        | ADMIN_ASSIGNED_FIELDS
        | COORDINATOR_LOCKED_FIELDS
        | descriptor.admin_only
        | descriptor.coordinator_write_denied
    )


RULES = build_default_registry()
