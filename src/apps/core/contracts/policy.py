from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NoReturn


class Role(str, Enum):
    ADMIN = "admin"
    COORDINATOR = "coordinator"
    LEADER = "leader"
    STAFF = "staff"
    SUPPLIER = "supplier"


class ResourceKind(str, Enum):
    EVENT = "event"
    EVENT_TYPE = "eventType"
    CONTRACT = "contract"
    RESOURCE = "resource"
    RESOURCE_TYPE = "resourceType"
    PROVIDER = "provider"
    PROVIDER_TYPE = "providerType"
    PERSONNEL = "personnel"
    PERSONNEL_TYPE = "personnelType"
    REPORT = "report"
    USER = "user"


class Operation(str, Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


WRITE_OPERATIONS = frozenset({Operation.CREATE, Operation.UPDATE})
READ_ONLY_ROLES = frozenset({Role.STAFF, Role.SUPPLIER})


class DenyReason(str, Enum):
    ROLE_INSUFFICIENT = "role_insufficient"
    OUT_OF_WINDOW = "out_of_window"
    NOT_OWNER = "not_owner"
    EVENT_NOT_ASSIGNED = "event_not_assigned"


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role
    assigned_event_ids: frozenset[str] = frozenset()
    associated_event_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class TimeWindow:
    """Closed date interval; ``end=None`` leaves the window open towards the future."""

    start: datetime
    end: datetime | None = None

    def __post_init__(self) -> None:
        if self.end is not None and self.start > self.end:
            raise ValueError(f"time window start {self.start.isoformat()} is after end {self.end.isoformat()}")


@dataclass(frozen=True)
class PolicyContext:
    actor: Actor
    kind: ResourceKind
    operation: Operation
    now: datetime
    requested_range: TimeWindow | None = None

    @property
    def role(self) -> Role:
        return self.actor.role


@dataclass(frozen=True)
class Allow:
    allowed: bool = field(default=True, init=False)
    detail: str = ""

    def raise_for_denial(self) -> None:
        return None


@dataclass(frozen=True)
class Deny:
    reason: DenyReason
    detail: str = ""
    allowed: bool = field(default=False, init=False)

    def raise_for_denial(self) -> NoReturn:
        from apps.core.contracts.errors import AuthorizationDenied

        raise AuthorizationDenied(self.reason, self.detail)


Decision = Allow | Deny

ALLOW = Allow()
