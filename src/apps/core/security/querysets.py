"""Translate policy filters into Django ORM lookups."""

from __future__ import annotations

import operator
from collections.abc import Mapping
from functools import reduce

from django.db.models import Q, QuerySet

from apps.core.services.filters import (
    AllOf,
    AnyOf,
    DateRange,
    Equals,
    Filter,
    In,
    MatchAll,
    NotEquals,
    NotIn,
    is_unrestricted,
)


def filter_to_q(filter_: Filter, field_map: Mapping[str, str] | None = None) -> Q:
    """``field_map`` maps record field names (``createdBy``) to ORM lookups (``created_by_id``)."""
    columns = field_map or {}

    def column(name: str) -> str:
        return columns.get(name, name)

    if isinstance(filter_, MatchAll):
        return Q()
    if isinstance(filter_, Equals):
        return Q(**{column(filter_.field): filter_.value})
    if isinstance(filter_, NotEquals):
        return ~Q(**{column(filter_.field): filter_.value})
    if isinstance(filter_, In):
        if not filter_.values:
            return Q(pk__in=[])
        return Q(**{f"{column(filter_.field)}__in": sorted(filter_.values)})
    if isinstance(filter_, NotIn):
        if not filter_.values:
            return Q()
        if filter_.ignore_case:
            name = column(filter_.field)
            return ~reduce(operator.or_, (Q(**{f"{name}__iexact": value}) for value in sorted(filter_.values)))
        return ~Q(**{f"{column(filter_.field)}__in": sorted(filter_.values)})
    if isinstance(filter_, DateRange):
        name = column(filter_.field)
        bounds = [Q(**{f"{name}__isnull": False})]
        if filter_.start is not None:
            bounds.append(Q(**{f"{name}__gte": filter_.start}))
        if filter_.end is not None:
            bounds.append(Q(**{f"{name}__lte": filter_.end}))
        return reduce(operator.and_, bounds)
    if isinstance(filter_, AnyOf):
        return reduce(operator.or_, (filter_to_q(clause, columns) for clause in filter_.clauses))
    if isinstance(filter_, AllOf):
        return reduce(operator.and_, (filter_to_q(clause, columns) for clause in filter_.clauses))
    raise TypeError(f"unsupported filter clause: {type(filter_).__name__}")


def apply_scope(queryset: QuerySet, filter_: Filter, field_map: Mapping[str, str] | None = None) -> QuerySet:
    if is_unrestricted(filter_):
        return queryset
    return queryset.filter(filter_to_q(filter_, field_map))
