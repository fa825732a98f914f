from __future__ import annotations

from dataclasses import asdict, dataclass

from apps.core.contracts.policy import DenyReason


@dataclass(frozen=True)
class ApiErrorPayload:
    code: str
    message: str
    request_id: str
    details: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class PolicyError(Exception):
    code = "policy_error"


class UnknownRole(PolicyError):
    code = "unknown_role"

    def __init__(self, raw_role: object) -> None:
        self.raw_role = raw_role
        super().__init__(f"Unknown role: {raw_role!r}")


class InvalidResourceKind(PolicyError):
    code = "policy_not_configured"

    def __init__(self, kind: object, detail: str = "") -> None:
        self.kind = kind
        message = f"No policy registered for resource kind {kind!r}"
        super().__init__(f"{message}: {detail}" if detail else message)


class AuthorizationDenied(PolicyError):
    code = "forbidden"

    def __init__(self, reason: DenyReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        super().__init__(detail or f"Access denied: {reason.value}")
