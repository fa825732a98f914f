from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from apps.core.contracts.errors import InvalidResourceKind
from apps.core.contracts.policy import ResourceKind, Role

PUBLIC = "public"
RESTRICTED = "restricted"
ADMIN_ONLY = "adminOnly"

COMMON_PUBLIC_FIELDS = frozenset({"id", "createdBy", "createdAt", "updatedAt", "lastUpdatedBy"})
SERVER_MANAGED_FIELDS = frozenset({"id", "_id", "createdBy", "createdAt", "updatedAt", "lastUpdatedBy"})
CREDENTIAL_FIELDS = frozenset({"password", "resetPasswordToken", "resetPasswordExpires"})
MINIMAL_PROJECTION = frozenset({"id", "_id", "title", "name", "date", "status"})
COORDINATOR_LOCKED_FIELDS = frozenset({"status", "active"})
ADMIN_ASSIGNED_FIELDS = frozenset({"role"})

COORDINATOR_REPORT_TYPES = frozenset({"financial", "operational"})
COORDINATOR_PROVIDER_CATEGORIES = frozenset({"technical_production", "food_beverage", "decoration_ambience"})
LEADER_HIDDEN_PROVIDER_CATEGORIES = frozenset({"security_emergency"})


@dataclass(frozen=True)
class KindDescriptor:
    kind: ResourceKind
    public: frozenset[str]
    restricted: frozenset[str] = frozenset()
    admin_only: frozenset[str] = frozenset()
    event_field: str | None = None
    date_field: str | None = None
    category_field: str | None = None
    team_field: str | None = None
    active_field: str = "active"
    hidden_restricted: dict[Role, frozenset[str]] = field(default_factory=dict)
    coordinator_write_denied: frozenset[str] = frozenset()
    coordinator_writable: frozenset[str] | None = None
    leader_writable: frozenset[str] = frozenset()

    @property
    def is_event_bearing(self) -> bool:
        return self.event_field is not None and self.date_field is not None

    def tier_of(self, name: str) -> str:
        if name in self.admin_only:
            return ADMIN_ONLY
        if name in self.restricted:
            return RESTRICTED
        return PUBLIC

    def hidden_for(self, role: Role) -> frozenset[str]:
        return self.hidden_restricted.get(role, frozenset())


def _descriptor(kind: ResourceKind, public: set[str], **kwargs) -> KindDescriptor:
    return KindDescriptor(kind=kind, public=frozenset(public) | COMMON_PUBLIC_FIELDS, **kwargs)


_DESCRIPTORS = (
    _descriptor(
        ResourceKind.EVENT,
        {"name", "description", "location", "eventType", "contract", "responsable", "startDate", "endDate", "status", "active", "notes", "observations"},
        restricted=frozenset({"budget", "internalNotes"}),
        admin_only=frozenset({"auditLogs"}),
        event_field="id",
        date_field="startDate",
        hidden_restricted={Role.LEADER: frozenset({"budget", "internalNotes"})},
        leader_writable=frozenset({"notes", "observations"}),
    ),
    _descriptor(
        ResourceKind.EVENT_TYPE,
        {"name", "description", "category", "active"},
        admin_only=frozenset({"auditLogs"}),
    ),
    _descriptor(
        ResourceKind.CONTRACT,
        {"name", "clientName", "startDate", "endDate", "status", "terms", "eventId", "notes"},
        restricted=frozenset({"budget", "clientPhone", "clientEmail", "resources", "providers", "personnel"}),
        admin_only=frozenset({"auditLogs"}),
        event_field="eventId",
        date_field="startDate",
        hidden_restricted={Role.LEADER: frozenset({"budget", "providers"})},
        leader_writable=frozenset({"notes"}),
    ),
    _descriptor(
        ResourceKind.RESOURCE,
        {"name", "description", "quantity", "resourceType", "status", "active"},
        restricted=frozenset({"cost"}),
        hidden_restricted={Role.LEADER: frozenset({"cost"})},
    ),
    _descriptor(
        ResourceKind.RESOURCE_TYPE,
        {"name", "description", "category", "active"},
    ),
    _descriptor(
        ResourceKind.PROVIDER,
        {"name", "category", "providerType", "status", "active", "contact", "contactPerson"},
        restricted=frozenset({"taxId", "bankAccount", "rates"}),
        admin_only=frozenset({"auditLogs"}),
        category_field="category",
        hidden_restricted={
            Role.COORDINATOR: frozenset({"taxId", "bankAccount", "rates"}),
            Role.LEADER: frozenset({"taxId", "bankAccount", "rates"}),
        },
        coordinator_writable=frozenset({"contact"}),
    ),
    _descriptor(
        ResourceKind.PROVIDER_TYPE,
        {"name", "category", "subCategory", "active"},
        restricted=frozenset({"description", "requirements"}),
        category_field="category",
        hidden_restricted={Role.LEADER: frozenset({"description", "requirements"})},
    ),
    _descriptor(
        ResourceKind.PERSONNEL,
        {"firstName", "lastName", "personnelType", "eventId", "leaderId", "date", "status", "active", "attendance", "observations"},
        restricted=frozenset({"email", "phone", "hourlyRate", "hours"}),
        admin_only=frozenset({"documentNumber"}),
        event_field="eventId",
        date_field="date",
        team_field="leaderId",
        hidden_restricted={Role.LEADER: frozenset({"hourlyRate"})},
        leader_writable=frozenset({"attendance", "observations"}),
    ),
    _descriptor(
        ResourceKind.PERSONNEL_TYPE,
        {"name", "description", "requiredCertifications", "active"},
        coordinator_write_denied=frozenset({"name", "requiredCertifications"}),
    ),
    _descriptor(
        ResourceKind.REPORT,
        {"title", "type", "eventId", "contract", "date", "status", "notes", "observations", "description", "attachments"},
        restricted=frozenset({"unitCosts", "profitMargins", "detailedCosts", "sensitiveNotes"}),
        admin_only=frozenset({"financialDetails", "costBreakdown", "rawData", "auditLogs"}),
        event_field="eventId",
        date_field="date",
        category_field="type",
        hidden_restricted={
            Role.COORDINATOR: frozenset({"unitCosts", "profitMargins"}),
            Role.LEADER: frozenset({"detailedCosts", "sensitiveNotes"}),
        },
        coordinator_write_denied=frozenset({"unitCosts"}),
        leader_writable=frozenset({"title", "description", "observations", "notes", "attachments"}),
    ),
    _descriptor(
        ResourceKind.USER,
        {"username", "fullname", "email", "role", "active"},
        restricted=frozenset({"document", "phone"}),
        admin_only=frozenset({"auditLogs"}),
    ),
)


def _validate(descriptor: KindDescriptor) -> None:
    tiers = (descriptor.public, descriptor.restricted, descriptor.admin_only)
    for index, left in enumerate(tiers):
        for right in tiers[index + 1:]:
            overlap = left & right
            if overlap:
                raise ValueError(f"{descriptor.kind.value}: fields in more than one tier: {sorted(overlap)}")
    for role, hidden in descriptor.hidden_restricted.items():
        stray = hidden - descriptor.restricted
        if stray:
            raise ValueError(f"{descriptor.kind.value}: {role.value} hides non-restricted fields {sorted(stray)}")
    if descriptor.event_field and descriptor.event_field != "id" and descriptor.event_field not in descriptor.public:
        raise ValueError(f"{descriptor.kind.value}: event field {descriptor.event_field} must be public")
    if descriptor.team_field and descriptor.team_field not in descriptor.public:
        raise ValueError(f"{descriptor.kind.value}: team field {descriptor.team_field} must be public")
    if descriptor.coordinator_writable is not None and descriptor.coordinator_writable & descriptor.admin_only:
        raise ValueError(f"{descriptor.kind.value}: coordinator may not write admin-only fields")


for _item in _DESCRIPTORS:
    _validate(_item)

KIND_CATALOG: MappingProxyType[ResourceKind, KindDescriptor] = MappingProxyType(
    {descriptor.kind: descriptor for descriptor in _DESCRIPTORS}
)


def descriptor_for(kind: ResourceKind) -> KindDescriptor:
    try:
        return KIND_CATALOG[kind]
    except KeyError:
        raise InvalidResourceKind(kind, "no field catalog") from None


@dataclass(frozen=True)
class DropFields:
    fields: frozenset[str]

    def apply(self, record: Mapping[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in record.items() if key not in self.fields}


@dataclass(frozen=True)
class KeepFields:
    fields: frozenset[str]

    def apply(self, record: Mapping[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in record.items() if key in self.fields}


Projection = DropFields | KeepFields
