"""Django REST framework adapters for the policy engine.

A viewset opts in by declaring ``policy_kind`` and listing ``PolicyPermission``
in ``permission_classes`` and ``PolicyScopeFilterBackend`` in ``filter_backends``.
``policy_field_map`` maps record field names to ORM lookups when the
queryset is a Django ``QuerySet``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from django.core.exceptions import ImproperlyConfigured
from django.db.models import QuerySet
from rest_framework import serializers
from rest_framework.exceptions import ValidationError
from rest_framework.filters import BaseFilterBackend
from rest_framework.permissions import BasePermission

from apps.core.contracts.identity import resolve_identity_context
from apps.core.contracts.policy import Deny, Operation, PolicyContext
from apps.core.security.querysets import apply_scope
from apps.core.security.rbac import log_denial, requested_range_from_query
from apps.core.services import access_checker, field_redactor, query_scoper
from apps.core.services.policy_context import build_policy_context

ACTION_OPERATIONS: dict[str, Operation] = {
    "list": Operation.LIST,
    "retrieve": Operation.READ,
    "create": Operation.CREATE,
    "update": Operation.UPDATE,
    "partial_update": Operation.UPDATE,
    "destroy": Operation.DELETE,
}

METHOD_OPERATIONS: dict[str, Operation] = {
    "GET": Operation.READ,
    "HEAD": Operation.READ,
    "OPTIONS": Operation.READ,
    "POST": Operation.CREATE,
    "PUT": Operation.UPDATE,
    "PATCH": Operation.UPDATE,
    "DELETE": Operation.DELETE,
}


def operation_for_view(request, view) -> Operation:
    action = getattr(view, "action", None)
    if action in ACTION_OPERATIONS:
        return ACTION_OPERATIONS[action]
    if action is None and request.method == "GET" and getattr(view, "policy_collection", False):
        return Operation.LIST
    return METHOD_OPERATIONS.get(request.method, Operation.READ)


def policy_context_for(request, view) -> PolicyContext | None:
    """Build the request's policy context once and cache it on the request."""
    context = getattr(request, "policy_context", None)
    if context is not None:
        return context

    kind = getattr(view, "policy_kind", None)
    if kind is None:
        raise ImproperlyConfigured(f"{type(view).__name__} must declare policy_kind")

    identity = resolve_identity_context(request)
    if identity.is_anonymous:
        return None

    operation = operation_for_view(request, view)
    requested_range = None
    if operation is Operation.LIST:
        try:
            requested_range = requested_range_from_query(request)
        except ValueError as exc:
            raise ValidationError({"date_range": [str(exc)]}) from None
    context = build_policy_context(identity.claims(), kind, operation, requested_range=requested_range)
    request.policy_context = context
    return context


def record_for(view, obj: Any) -> Mapping[str, Any]:
    getter = getattr(view, "get_policy_record", None)
    if getter is not None:
        return getter(obj)
    if isinstance(obj, Mapping):
        return obj
    field_map: Mapping[str, str] = getattr(view, "policy_field_map", {})
    columns = {column: name for name, column in field_map.items()}
    record = {columns.get(key, key): value for key, value in vars(obj).items() if not key.startswith("_")}
    record.setdefault("id", obj.pk)
    return record


class PolicyPermission(BasePermission):
    message = "Access denied."

    def _deny(self, request, context: PolicyContext, decision: Deny) -> bool:
        log_denial(request, context, decision)
        self.message = {"detail": decision.detail or f"Access denied: {decision.reason.value}", "reason": decision.reason.value}
        return False

    def has_permission(self, request, view) -> bool:
        context = policy_context_for(request, view)
        if context is None:
            self.message = "Authentication required."
            return False
        if context.operation is Operation.CREATE:
            payload = request.data if isinstance(request.data, Mapping) else {}
            decision = access_checker.check(context, payload)
            if isinstance(decision, Deny):
                return self._deny(request, context, decision)
        return True

    def has_object_permission(self, request, view, obj) -> bool:
        context = policy_context_for(request, view)
        if context is None:
            return False
        if context.operation is Operation.LIST:
            context = build_policy_context(context.actor, context.kind, Operation.READ, now=context.now)
        decision = access_checker.check(context, record_for(view, obj))
        if isinstance(decision, Deny):
            return self._deny(request, context, decision)
        return True


class PolicyScopeFilterBackend(BaseFilterBackend):
    """Restrict list results to the caller's scope; in-memory rows are matched directly."""

    def filter_queryset(self, request, queryset, view):
        context = policy_context_for(request, view)
        if context is None:
            return queryset.none() if isinstance(queryset, QuerySet) else []
        if context.operation is not Operation.LIST:
            context = build_policy_context(
                context.actor, context.kind, Operation.LIST, requested_range=context.requested_range, now=context.now
            )
        filter_ = query_scoper.scope(context)
        request.policy_filter = filter_
        if isinstance(queryset, QuerySet):
            return apply_scope(queryset, filter_, getattr(view, "policy_field_map", None))
        return [row for row in queryset if filter_.matches(row)]


class RedactingSerializerMixin:
    """Read output and write input pass through the caller's field projections."""

    def _policy_context(self) -> PolicyContext:
        request = self.context.get("request")
        context = getattr(request, "policy_context", None)
        if context is None:
            raise ImproperlyConfigured(f"{type(self).__name__} requires a request with a policy context")
        return context

    def to_representation(self, instance):
        data = super().to_representation(instance)
        context = self._policy_context()
        return field_redactor.redact_for_read(data, context.role, context.kind)

    def to_internal_value(self, data):
        context = self._policy_context()
        return super().to_internal_value(field_redactor.redact_for_write(data, context.role, context.kind))


class MappingRecordSerializer(serializers.BaseSerializer):
    """Pass-through serializer for document-shaped records."""

    def to_representation(self, instance):
        return dict(instance)

    def to_internal_value(self, data):
        if not isinstance(data, Mapping):
            raise serializers.ValidationError({"non_field_errors": ["Expected a JSON object."]})
        return dict(data)


class RedactedRecordSerializer(RedactingSerializerMixin, MappingRecordSerializer):
    pass

