"""Policy enforcement decorator for plain Django views."""

from __future__ import annotations

import functools
import logging
from collections.abc import Mapping
from typing import Any, Callable

from django.http import HttpRequest, HttpResponse

from apps.core.contracts.identity import resolve_identity_context
from apps.core.contracts.policy import Deny, Operation, PolicyContext, ResourceKind, TimeWindow, WRITE_OPERATIONS
from apps.core.responses import api_error, api_forbidden, parse_json_body
from apps.core.services import access_checker, field_redactor, query_scoper
from apps.core.services.policy_context import build_policy_context, build_time_range, parse_kind, parse_operation
from apps.core.services.time_windows import coerce_datetime

LOGGER = logging.getLogger("eventadmin.policy")

RecordLoader = Callable[..., Mapping[str, Any] | None]


def requested_range_from_query(request: HttpRequest) -> TimeWindow | None:
    """Read ``date_from``/``date_to`` as the caller's explicit date range.

    Raises ``ValueError`` when a supplied bound does not parse or the bounds are reversed.
    """
    raw_from = str(request.GET.get("date_from", "")).strip()
    raw_to = str(request.GET.get("date_to", "")).strip()
    for name, raw in (("date_from", raw_from), ("date_to", raw_to)):
        if raw and coerce_datetime(raw) is None:
            raise ValueError(f"{name} is not an ISO-8601 date: {raw}")
    return build_time_range(raw_from or None, raw_to or None)


def log_denial(request: HttpRequest, context: PolicyContext, decision: Deny) -> None:
    LOGGER.info(
        "access_denied user=%s role=%s kind=%s operation=%s reason=%s request_id=%s",
        context.actor.id,
        context.role.value,
        context.kind.value,
        context.operation.value,
        decision.reason.value,
        getattr(request, "request_id", ""),
    )


def deny_response(request: HttpRequest, context: PolicyContext, decision: Deny) -> HttpResponse:
    log_denial(request, context, decision)
    return api_forbidden(request, decision.reason, decision.detail)


def require_policy(
    kind: ResourceKind | str,
    operation: Operation | str,
    load_record: RecordLoader | None = None,
):
    """
    Decorator enforcing the policy engine on a view.

    Usage:
        @require_policy("report", "list")
        def report_collection(request):
            rows = storage.find(request.policy_filter)
            ...

        @require_policy("event", "update", load_record=lambda request, event_id: EVENTS.get(event_id))
        def event_detail(request, event_id):
            storage.save(event_id, request.policy_payload)
            ...

    Sets ``request.policy_context`` for every operation, ``request.policy_filter``
    for list, ``request.policy_record`` when a loader is given and
    ``request.policy_payload`` (write-redacted JSON body) for create/update.
    """

    policy_kind = parse_kind(kind)
    policy_operation = parse_operation(operation)

    def decorator(view_func: Callable) -> Callable:
        @functools.wraps(view_func)
        def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
            identity = resolve_identity_context(request)
            if identity.is_anonymous:
                return api_error(request, code="unauthenticated", message="Authentication required", status=401)

            requested_range = None
            if policy_operation is Operation.LIST:
                try:
                    requested_range = requested_range_from_query(request)
                except ValueError as exc:
                    return api_error(request, code="invalid_date_range", message=str(exc), status=400)

            context = build_policy_context(identity.claims(), policy_kind, policy_operation, requested_range=requested_range)
            request.policy_context = context

            if context.operation is Operation.LIST:
                request.policy_filter = query_scoper.scope(context)
                return view_func(request, *args, **kwargs)

            payload: dict[str, Any] = {}
            if context.operation in WRITE_OPERATIONS:
                try:
                    payload = parse_json_body(request)
                except ValueError as exc:
                    return api_error(request, code="invalid_json", message=str(exc), status=400)

            record: Mapping[str, Any] | None = None
            if load_record is not None:
                record = load_record(request, *args, **kwargs)
                if record is None:
                    return api_error(request, code="not_found", message="Record not found", status=404)
            elif context.operation is Operation.CREATE:
                record = payload
            request.policy_record = record

            decision = access_checker.check(context, record)
            if isinstance(decision, Deny):
                return deny_response(request, context, decision)

            if context.operation in WRITE_OPERATIONS:
                request.policy_payload = field_redactor.redact_for_write(payload, context.role, context.kind)
            return view_func(request, *args, **kwargs)

        return wrapper

    return decorator
