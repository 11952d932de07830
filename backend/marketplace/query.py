"""Listing queries as plain values

A ListingQuery is a scope plus a list of clauses, any store can run it.
There are three scopes with their own entry points because they have
different access rules: public browsing, the moderation queue and an owner's
own listings
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

from .errors import InputError
from .models import FilterSet

# Search text is matched against any of these
SEARCH_COLUMNS = ("title", "brand", "model")

# newest first, id breaks ties so pages stay stable
DEFAULT_ORDER: Tuple[Tuple[str, bool], ...] = (("created_at", True), ("id", False))


class Scope(str, Enum):
    PUBLIC = "public"
    PENDING = "pending"
    OWNER = "owner"


class Op(str, Enum):
    EQ = "eq"  # exact
    IEQ = "ieq"  # case-insensitive equality
    CONTAINS = "contains"  # case-insensitive substring
    GTE = "gte"
    LTE = "lte"
    ANY_CONTAINS = "any_contains"  # substring on any of several columns


@dataclass(frozen=True)
class Clause:
    columns: Tuple[str, ...]
    op: Op
    value: Any

    @property
    def column(self) -> str:
        return self.columns[0]


@dataclass(frozen=True)
class ListingQuery:
    scope: Scope
    clauses: Tuple[Clause, ...] = ()
    order: Tuple[Tuple[str, bool], ...] = DEFAULT_ORDER
    limit: Optional[int] = None


def _clause(column: str, op: Op, value: Any) -> Clause:
    return Clause((column,), op, value)


# (filter attribute, column, op)
_FILTER_MAP = (
    ("brand", "brand", Op.IEQ),
    ("model", "model", Op.IEQ),
    ("min_price", "price", Op.GTE),
    ("max_price", "price", Op.LTE),
    ("min_year", "year", Op.GTE),
    ("max_year", "year", Op.LTE),
    ("fuel_type", "fuel_type", Op.IEQ),
    ("transmission", "transmission", Op.IEQ),
    ("body_type", "body_type", Op.IEQ),
    ("color", "color", Op.IEQ),
    ("location", "location", Op.CONTAINS),
    ("min_mileage", "mileage", Op.GTE),
    ("max_mileage", "mileage", Op.LTE),
)


def filter_clauses(filters: Optional[FilterSet]) -> List[Clause]:
    """Turn a FilterSet into clauses, absent fields add nothing"""
    if filters is None:
        return []
    out: List[Clause] = []
    for attr, column, op in _FILTER_MAP:
        value = getattr(filters, attr)
        if value is not None:
            out.append(_clause(column, op, value))
    if filters.search:
        out.append(Clause(SEARCH_COLUMNS, Op.ANY_CONTAINS, filters.search))
    return out


def public_query(filters: Optional[FilterSet] = None, limit: Optional[int] = None) -> ListingQuery:
    scope = [_clause("is_sold", Op.EQ, False), _clause("is_approved", Op.EQ, True)]
    return ListingQuery(Scope.PUBLIC, tuple(scope + filter_clauses(filters)), limit=limit)


def pending_query() -> ListingQuery:
    return ListingQuery(Scope.PENDING, (_clause("is_approved", Op.EQ, False),))


def owner_query(owner_id: str) -> ListingQuery:
    if not owner_id or not str(owner_id).strip():
        raise InputError("owner id is required")
    return ListingQuery(Scope.OWNER, (_clause("user_id", Op.EQ, str(owner_id).strip()),))


def detail_clauses() -> Tuple[Clause, ...]:
    # Detail pages show approved listings only, sold ones stay reachable so old links keep working
    return (_clause("is_approved", Op.EQ, True),)
