from __future__ import annotations

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.core.config.env import get_runtime_settings, validate_runtime_settings
from apps.core.contracts.errors import InvalidResourceKind
from apps.core.contracts.identity import resolve_identity_context
from apps.core.contracts.policy import Deny, Operation, ResourceKind, Role
from apps.core.responses import api_error, api_json, parse_json_body
from apps.core.security.rbac import log_denial, requested_range_from_query
from apps.core.services import access_checker, field_redactor, query_scoper
from apps.core.services.filters import is_unrestricted
from apps.core.services.policy_context import build_policy_context, parse_kind, parse_operation


def health_live(request: HttpRequest) -> JsonResponse:
    return JsonResponse({"ok": True, "service": "eventadmin-policy", "status": "live"})


def runtime_metadata(request: HttpRequest) -> JsonResponse:
    settings = get_runtime_settings()
    return JsonResponse(
        {
            "runtime_profile": settings.runtime_profile,
            "env": settings.env,
            "log_level": settings.log_level,
            "dev_identity_enabled": settings.dev_identity_enabled and settings.runtime_profile == "local",
            "roles": [role.value for role in Role],
            "resource_kinds": [kind.value for kind in ResourceKind],
            "config_issues": validate_runtime_settings(settings),
        }
    )


@require_http_methods(["GET"])
def policy_scope_api(request: HttpRequest, kind: str) -> JsonResponse:
    identity = resolve_identity_context(request)
    if identity.is_anonymous:
        return api_error(request, code="unauthenticated", message="Authentication required", status=401)
    try:
        resource_kind = parse_kind(kind)
    except InvalidResourceKind as exc:
        return api_error(request, code="unknown_resource_kind", message=str(exc), status=404)
    try:
        requested_range = requested_range_from_query(request)
    except ValueError as exc:
        return api_error(request, code="invalid_date_range", message=str(exc), status=400)

    context = build_policy_context(identity.claims(), resource_kind, Operation.LIST, requested_range=requested_range)
    request.policy_context = context
    filter_ = query_scoper.scope(context)
    return api_json(
        {
            "kind": context.kind.value,
            "role": context.role.value,
            "evaluated_at": context.now.isoformat(),
            "unrestricted": is_unrestricted(filter_),
            "filter": filter_.to_dict(),
        }
    )


@csrf_exempt
@require_http_methods(["POST"])
def policy_check_api(request: HttpRequest) -> JsonResponse:
    identity = resolve_identity_context(request)
    if identity.is_anonymous:
        return api_error(request, code="unauthenticated", message="Authentication required", status=401)
    try:
        body = parse_json_body(request)
    except ValueError as exc:
        return api_error(request, code="invalid_json", message=str(exc), status=400)

    record = body.get("record")
    payload = body.get("payload")
    if record is not None and not isinstance(record, dict):
        return api_error(request, code="invalid_request", message="record must be a JSON object", status=400)
    if payload is not None and not isinstance(payload, dict):
        return api_error(request, code="invalid_request", message="payload must be a JSON object", status=400)

    try:
        resource_kind = parse_kind(body.get("kind"))
        operation = parse_operation(body.get("operation", ""))
    except InvalidResourceKind as exc:
        return api_error(request, code="invalid_request", message=str(exc), status=400)
    if operation is Operation.LIST:
        return api_error(
            request,
            code="invalid_request",
            message="list operations are scoped, use /api/v1/policy/scope/<kind>",
            status=400,
        )

    context = build_policy_context(identity.claims(), resource_kind, operation)
    request.policy_context = context
    subject = record if record is not None else (payload if operation is Operation.CREATE else None)
    decision = access_checker.check(context, subject)
    if isinstance(decision, Deny):
        log_denial(request, context, decision)

    result: dict[str, object] = {
        "kind": context.kind.value,
        "operation": context.operation.value,
        "role": context.role.value,
        "allowed": decision.allowed,
        "reason": decision.reason.value if isinstance(decision, Deny) else None,
        "detail": decision.detail,
    }
    if decision.allowed and record is not None:
        result["record"] = field_redactor.redact_for_read(record, context.role, context.kind)
    if decision.allowed and payload is not None and operation in (Operation.CREATE, Operation.UPDATE):
        result["payload"] = field_redactor.redact_for_write(payload, context.role, context.kind)
        result["dropped_fields"] = field_redactor.dropped_write_fields(payload, context.role, context.kind)
    return api_json(result)
