from __future__ import annotations

import json
from datetime import timedelta

import pytest
from django.http import HttpResponse, JsonResponse
from django.test import RequestFactory

from apps.core.contracts.errors import UnknownRole
from apps.core.security import require_policy
from apps.core.services.field_redactor import redact_for_read
from apps.core.services.time_windows import utc_now

TODAY = utc_now()

REPORTS = {
    "R1": {"id": "R1", "title": "Setup", "type": "operational", "eventId": "E1", "date": (TODAY + timedelta(days=1)).isoformat(), "createdBy": "C1", "unitCosts": [3]},
    "R2": {"id": "R2", "title": "Teardown", "type": "internal", "eventId": "E2", "date": TODAY.isoformat(), "createdBy": "A1"},
    "R3": {"id": "R3", "title": "Archive", "type": "financial", "eventId": "E1", "date": (TODAY - timedelta(days=300)).isoformat(), "createdBy": "A1"},
}


def _load_report(request, report_id: str):
    return REPORTS.get(report_id)


@require_policy("report", "list")
def report_collection(request):
    rows = [row for row in REPORTS.values() if request.policy_filter.matches(row)]
    role = request.policy_context.role
    return JsonResponse({"items": [redact_for_read(row, role, "report") for row in rows]})


@require_policy("report", "read", load_record=_load_report)
def report_detail(request, report_id: str):
    return JsonResponse(redact_for_read(request.policy_record, request.policy_context.role, "report"))


@require_policy("report", "update", load_record=_load_report)
def report_update(request, report_id: str):
    return JsonResponse({"payload": request.policy_payload})


@require_policy("report", "create")
def report_create(request):
    return JsonResponse({"payload": request.policy_payload}, status=201)


@require_policy("report", "delete", load_record=_load_report)
def report_delete(request, report_id: str):
    return HttpResponse(status=204)


def _headers(user: str, role: str, assigned: str = "", associated: str = "") -> dict[str, str]:
    return {
        "HTTP_X_FORWARDED_USER": user,
        "HTTP_X_FORWARDED_ROLE": role,
        "HTTP_X_FORWARDED_ASSIGNED_EVENTS": assigned,
        "HTTP_X_FORWARDED_ASSOCIATED_EVENTS": associated,
    }


def _ids(response) -> list[str]:
    return sorted(item["id"] for item in json.loads(response.content)["items"])


def test_anonymous_requests_are_rejected(clear_policy_env) -> None:
    response = report_collection(RequestFactory().get("/reports"))

    assert response.status_code == 401
    assert json.loads(response.content)["code"] == "unauthenticated"


def test_leader_list_is_scoped_to_assigned_events_in_window(clear_policy_env) -> None:
    response = report_collection(RequestFactory().get("/reports", **_headers("L1", "Líder", assigned="E1")))

    assert response.status_code == 200
    assert _ids(response) == ["R1"]


def test_coordinator_list_applies_default_window(clear_policy_env) -> None:
    response = report_collection(RequestFactory().get("/reports", **_headers("C1", "coordinator")))

    assert _ids(response) == ["R1"]
    assert "unitCosts" not in json.loads(response.content)["items"][0]


def test_coordinator_explicit_range_replaces_default_window(clear_policy_env) -> None:
    date_from = (TODAY - timedelta(days=365)).date().isoformat()
    date_to = (TODAY - timedelta(days=200)).date().isoformat()
    request = RequestFactory().get("/reports", {"date_from": date_from, "date_to": date_to}, **_headers("C1", "coordinator"))

    response = report_collection(request)

    assert _ids(response) == ["R3"]


def test_invalid_date_range_is_a_bad_request(clear_policy_env) -> None:
    request = RequestFactory().get("/reports", {"date_from": "yesterday"}, **_headers("C1", "coordinator"))

    response = report_collection(request)

    assert response.status_code == 400
    assert json.loads(response.content)["code"] == "invalid_date_range"


def test_missing_record_is_not_found(clear_policy_env) -> None:
    response = report_detail(RequestFactory().get("/reports/R9", **_headers("A1", "admin")), report_id="R9")

    assert response.status_code == 404


def test_denied_read_carries_the_reason(clear_policy_env) -> None:
    response = report_detail(RequestFactory().get("/reports/R2", **_headers("L1", "leader", assigned="E1")), report_id="R2")

    payload = json.loads(response.content)
    assert response.status_code == 403
    assert payload["code"] == "forbidden"
    assert payload["details"] == ["event_not_assigned"]


def test_update_payload_is_write_redacted(clear_policy_env) -> None:
    request = RequestFactory().patch(
        "/reports/R1",
        data=json.dumps({"title": "Setup v2", "status": "final", "createdBy": "C9"}),
        content_type="application/json",
        **_headers("C1", "coordinator"),
    )

    response = report_update(request, report_id="R1")

    assert response.status_code == 200
    assert json.loads(response.content)["payload"] == {"title": "Setup v2"}


def test_create_is_denied_for_read_only_roles(clear_policy_env) -> None:
    request = RequestFactory().post(
        "/reports",
        data=json.dumps({"title": "Mine"}),
        content_type="application/json",
        **_headers("U1", "staff", associated="E1"),
    )

    response = report_create(request)

    assert response.status_code == 403
    assert json.loads(response.content)["details"] == ["role_insufficient"]


def test_invalid_json_body_is_a_bad_request(clear_policy_env) -> None:
    request = RequestFactory().post("/reports", data="[1, 2]", content_type="application/json", **_headers("A1", "admin"))

    response = report_create(request)

    assert response.status_code == 400
    assert json.loads(response.content)["code"] == "invalid_json"


def test_only_admin_deletes(clear_policy_env) -> None:
    denied = report_delete(RequestFactory().delete("/reports/R1", **_headers("C1", "coordinator")), report_id="R1")
    allowed = report_delete(RequestFactory().delete("/reports/R1", **_headers("A1", "admin")), report_id="R1")

    assert denied.status_code == 403
    assert allowed.status_code == 204


def test_unknown_role_propagates_to_the_error_middleware(clear_policy_env) -> None:
    with pytest.raises(UnknownRole):
        report_collection(RequestFactory().get("/reports", **_headers("X1", "auditor")))
