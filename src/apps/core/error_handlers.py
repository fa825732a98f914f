from __future__ import annotations

import logging
from collections.abc import Callable

from django.http import HttpRequest, HttpResponse, JsonResponse

from apps.core.contracts.errors import ApiErrorPayload, AuthorizationDenied, InvalidResourceKind, UnknownRole

LOGGER = logging.getLogger("eventadmin.policy")


def _payload(request: HttpRequest, code: str, message: str, details: tuple[str, ...] = ()) -> dict[str, object]:
    request_id = str(getattr(request, "request_id", ""))
    return ApiErrorPayload(code=code, message=message, request_id=request_id, details=details).to_dict()


class UnifiedErrorMiddleware:
    """Render policy failures and unhandled view errors as ``ApiErrorPayload`` JSON."""

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        return self.get_response(request)

    def process_exception(self, request: HttpRequest, exception: Exception) -> HttpResponse | None:
        request_id = str(getattr(request, "request_id", ""))
        if isinstance(exception, UnknownRole):
            LOGGER.warning("unknown_role raw_role=%r path=%s request_id=%s", exception.raw_role, request.path, request_id)
            return JsonResponse(_payload(request, exception.code, str(exception)), status=403)
        if isinstance(exception, AuthorizationDenied):
            LOGGER.info(
                "access_denied reason=%s path=%s request_id=%s", exception.reason.value, request.path, request_id
            )
            return JsonResponse(
                _payload(request, exception.code, str(exception), (exception.reason.value,)),
                status=403,
            )
        if isinstance(exception, InvalidResourceKind):
            LOGGER.error("policy_not_configured kind=%r path=%s request_id=%s", exception.kind, request.path, request_id)
            return JsonResponse(_payload(request, exception.code, str(exception)), status=500)

        LOGGER.error("request_failed request_id=%s path=%s", request_id, request.path, exc_info=exception)
        if request.path.startswith("/api/"):
            return JsonResponse(_payload(request, "internal_error", "An internal error occurred."), status=500)
        return None
