from __future__ import annotations

import pytest

from apps.core.contracts.errors import InvalidResourceKind
from apps.core.contracts.policy import ResourceKind, Role
from apps.core.services.field_catalog import (
    ADMIN_ONLY,
    KIND_CATALOG,
    PUBLIC,
    RESTRICTED,
    KindDescriptor,
    _validate,
    descriptor_for,
)


@pytest.mark.parametrize("kind", list(ResourceKind))
def test_every_kind_has_partitioned_tiers(kind: ResourceKind) -> None:
    descriptor = descriptor_for(kind)

    assert not descriptor.public & descriptor.restricted
    assert not descriptor.public & descriptor.admin_only
    assert not descriptor.restricted & descriptor.admin_only
    for hidden in descriptor.hidden_restricted.values():
        assert hidden <= descriptor.restricted


def test_catalog_is_read_only() -> None:
    with pytest.raises(TypeError):
        KIND_CATALOG[ResourceKind.EVENT] = KIND_CATALOG[ResourceKind.REPORT]


def test_tier_lookup() -> None:
    report = descriptor_for(ResourceKind.REPORT)

    assert report.tier_of("title") == PUBLIC
    assert report.tier_of("unitCosts") == RESTRICTED
    assert report.tier_of("rawData") == ADMIN_ONLY
    assert report.tier_of("undeclared") == PUBLIC
    assert report.hidden_for(Role.COORDINATOR) == frozenset({"unitCosts", "profitMargins"})
    assert report.hidden_for(Role.ADMIN) == frozenset()


def test_event_bearing_kinds() -> None:
    bearing = {kind for kind, descriptor in KIND_CATALOG.items() if descriptor.is_event_bearing}

    assert bearing == {ResourceKind.EVENT, ResourceKind.CONTRACT, ResourceKind.PERSONNEL, ResourceKind.REPORT}


def test_overlapping_tiers_are_rejected() -> None:
    broken = KindDescriptor(
        kind=ResourceKind.RESOURCE,
        public=frozenset({"name", "cost"}),
        restricted=frozenset({"cost"}),
    )

    with pytest.raises(ValueError):
        _validate(broken)


def test_unknown_kind_fails_closed() -> None:
    with pytest.raises(InvalidResourceKind):
        descriptor_for("invoice")
