"""Declarative record filters produced by the query scoper.

Filters are plain values: the storage collaborator translates them into its own
query language (see ``apps.core.security.querysets``) and the access checker
evaluates them in memory against a single loaded record.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from apps.core.services.time_windows import as_utc, coerce_datetime

Record = Mapping[str, Any]

DEFAULT_ORIGIN = "default"
ROLE_ORIGIN = "role"
CALLER_ORIGIN = "caller"


def _normalize_value(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    return str(value)


@dataclass(frozen=True)
class MatchAll:
    def matches(self, record: Record) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {"op": "all"}


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any

    def matches(self, record: Record) -> bool:
        if self.field not in record:
            return False
        return _normalize_value(record[self.field]) == _normalize_value(self.value)

    def to_dict(self) -> dict[str, Any]:
        return {"op": "eq", "field": self.field, "value": self.value}


@dataclass(frozen=True)
class NotEquals:
    field: str
    value: Any

    def matches(self, record: Record) -> bool:
        return _normalize_value(record.get(self.field)) != _normalize_value(self.value)

    def to_dict(self) -> dict[str, Any]:
        return {"op": "ne", "field": self.field, "value": self.value}


@dataclass(frozen=True)
class In:
    field: str
    values: frozenset[str]

    def matches(self, record: Record) -> bool:
        value = record.get(self.field)
        if value is None:
            return False
        return str(value) in self.values

    def to_dict(self) -> dict[str, Any]:
        return {"op": "in", "field": self.field, "values": sorted(self.values)}


@dataclass(frozen=True)
class NotIn:
    """Excludes records whose value is one of ``values``; missing values pass."""

    field: str
    values: frozenset[str]
    ignore_case: bool = False

    def _key(self, value: object) -> str:
        text = str(value).strip()
        return text.casefold() if self.ignore_case else text

    def matches(self, record: Record) -> bool:
        value = record.get(self.field)
        if value is None:
            return True
        return self._key(value) not in {self._key(item) for item in self.values}

    def to_dict(self) -> dict[str, Any]:
        return {"op": "nin", "field": self.field, "values": sorted(self.values), "ignore_case": self.ignore_case}


@dataclass(frozen=True)
class DateRange:
    field: str
    start: datetime | None = None
    end: datetime | None = None
    origin: str = ROLE_ORIGIN

    def matches(self, record: Record) -> bool:
        moment = coerce_datetime(record.get(self.field))
        if moment is None:
            return False
        if self.start is not None and moment < as_utc(self.start):
            return False
        if self.end is not None and moment > as_utc(self.end):
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": "date_range",
            "field": self.field,
            "gte": self.start.isoformat() if self.start else None,
            "lte": self.end.isoformat() if self.end else None,
            "origin": self.origin,
        }


@dataclass(frozen=True)
class AnyOf:
    clauses: tuple[Filter, ...]

    def matches(self, record: Record) -> bool:
        return any(clause.matches(record) for clause in self.clauses)

    def to_dict(self) -> dict[str, Any]:
        return {"op": "or", "clauses": [clause.to_dict() for clause in self.clauses]}


@dataclass(frozen=True)
class AllOf:
    clauses: tuple[Filter, ...]

    def matches(self, record: Record) -> bool:
        return all(clause.matches(record) for clause in self.clauses)

    def to_dict(self) -> dict[str, Any]:
        return {"op": "and", "clauses": [clause.to_dict() for clause in self.clauses]}


Filter = Union[MatchAll, Equals, NotEquals, In, NotIn, DateRange, AnyOf, AllOf]

MATCH_ALL = MatchAll()


def any_of(*clauses: Filter | None) -> Filter:
    flat: list[Filter] = []
    for clause in clauses:
        if clause is None:
            continue
        if isinstance(clause, MatchAll):
            return MATCH_ALL
        flat.extend(clause.clauses if isinstance(clause, AnyOf) else (clause,))
    if not flat:
        raise ValueError("any_of requires at least one clause")
    return flat[0] if len(flat) == 1 else AnyOf(tuple(flat))


def all_of(*clauses: Filter | None) -> Filter:
    flat: list[Filter] = []
    for clause in clauses:
        if clause is None or isinstance(clause, MatchAll):
            continue
        flat.extend(clause.clauses if isinstance(clause, AllOf) else (clause,))
    if not flat:
        return MATCH_ALL
    return flat[0] if len(flat) == 1 else AllOf(tuple(flat))


def in_set(field: str, values: Iterable[object]) -> In:
    return In(field, frozenset(str(value) for value in values))


def iter_clauses(filter_: Filter) -> Iterable[Filter]:
    yield filter_
    if isinstance(filter_, (AnyOf, AllOf)):
        for clause in filter_.clauses:
            yield from iter_clauses(clause)


def is_unrestricted(filter_: Filter) -> bool:
    return isinstance(filter_, MatchAll)
