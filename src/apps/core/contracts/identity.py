from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from django.http import HttpRequest

from apps.core.config.env import get_runtime_settings

ANONYMOUS_USER_ID = ""
_USER_ID_RE = re.compile(r"^[A-Za-z0-9._@:\-]{1,128}$")
_ID_ITEM_RE = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")


@dataclass(frozen=True)
class IdentityContext:
    user_id: str
    role_claim: str
    assigned_event_ids: tuple[str, ...]
    associated_event_ids: tuple[str, ...]
    auth_source: str
    is_anonymous: bool

    def claims(self) -> dict[str, Any]:
        return {
            "id": self.user_id,
            "role": self.role_claim,
            "assigned_event_ids": self.assigned_event_ids,
            "associated_event_ids": self.associated_event_ids,
        }


def _is_valid_user_id(value: str) -> bool:
    return bool(_USER_ID_RE.fullmatch(value))


def _parse_ids(raw: str) -> tuple[str, ...]:
    ids: list[str] = []
    for item in raw.split(","):
        candidate = item.strip()
        if candidate and _ID_ITEM_RE.fullmatch(candidate) and candidate not in ids:
            ids.append(candidate)
    return tuple(ids)


def _header(request: HttpRequest, name: str) -> str:
    return str(request.headers.get(name, "")).strip()


def resolve_identity_context(request: HttpRequest) -> IdentityContext:
    """Build the caller's identity from the headers set by the upstream auth proxy.

    The role claim is passed through untouched; normalization happens once in
    ``build_policy_context`` so an unrecognized label fails there as ``UnknownRole``.
    """
    user_id = _header(request, "X-Forwarded-User")
    role_claim = _header(request, "X-Forwarded-Role")

    if user_id and _is_valid_user_id(user_id) and role_claim:
        return IdentityContext(
            user_id=user_id,
            role_claim=role_claim,
            assigned_event_ids=_parse_ids(_header(request, "X-Forwarded-Assigned-Events")),
            associated_event_ids=_parse_ids(_header(request, "X-Forwarded-Associated-Events")),
            auth_source="forwarded_headers",
            is_anonymous=False,
        )

    settings = get_runtime_settings()
    if settings.runtime_profile == "local" and settings.dev_identity_enabled:
        dev_user = settings.dev_user.strip()
        if dev_user and _is_valid_user_id(dev_user) and settings.dev_role:
            return IdentityContext(
                user_id=dev_user,
                role_claim=settings.dev_role,
                assigned_event_ids=_parse_ids(settings.dev_assigned_events),
                associated_event_ids=_parse_ids(settings.dev_associated_events),
                auth_source="dev_env_override",
                is_anonymous=False,
            )

    return IdentityContext(
        user_id=ANONYMOUS_USER_ID,
        role_claim="",
        assigned_event_ids=(),
        associated_event_ids=(),
        auth_source="anonymous_fallback",
        is_anonymous=True,
    )
