from __future__ import annotations

from django.urls import path

from apps.core import api as core_api

urlpatterns = [
    path("api/v1/health/live", core_api.health_live, name="health-live"),
    path("api/v1/runtime", core_api.runtime_metadata, name="runtime-metadata"),
    path("api/v1/policy/scope/<str:kind>", core_api.policy_scope_api, name="policy-scope"),
    path("api/v1/policy/check", core_api.policy_check_api, name="policy-check"),
]
