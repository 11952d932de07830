"""Listings store on the hosted Postgres REST API (Supabase / PostgREST)

Queries are translated into PostgREST filter parameters so row filtering,
ordering and limits all happen in the database
"""

from __future__ import annotations
import logging
from typing import Any, Iterable, List, Optional, Tuple

import requests

from .errors import StoreError
from .models import Listing
from .query import Clause, ListingQuery, Op

logger = logging.getLogger(__name__)

TABLE = "cars"
DEFAULT_TIMEOUT = 10


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _escape_like(text: str) -> str:
    # PostgREST uses * as the wildcard, a literal % or _ would widen the match
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_").replace("*", "")


def _quoted(text: str) -> str:
    # Values inside or=(...) need quoting when they carry , . : ( )
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def clause_params(clauses: Iterable[Clause]) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = []
    for c in clauses:
        if c.op == Op.EQ:
            params.append((c.column, f"eq.{_literal(c.value)}"))
        elif c.op == Op.IEQ:
            params.append((c.column, f"ilike.{_escape_like(str(c.value))}"))
        elif c.op == Op.CONTAINS:
            params.append((c.column, f"ilike.*{_escape_like(str(c.value))}*"))
        elif c.op == Op.GTE:
            params.append((c.column, f"gte.{_literal(c.value)}"))
        elif c.op == Op.LTE:
            params.append((c.column, f"lte.{_literal(c.value)}"))
        elif c.op == Op.ANY_CONTAINS:
            term = _quoted(f"*{_escape_like(str(c.value))}*")
            params.append(("or", "(" + ",".join(f"{col}.ilike.{term}" for col in c.columns) + ")"))
        else:
            raise ValueError(f"unsupported clause op {c.op}")
    return params


def query_params(query: ListingQuery) -> List[Tuple[str, str]]:
    """Build the query string for a ListingQuery, repeated keys are allowed"""
    params: List[Tuple[str, str]] = [("select", "*")] + clause_params(query.clauses)
    if query.order:
        params.append(("order", ",".join(f"{col}.{'desc' if desc else 'asc'}" for col, desc in query.order)))
    if query.limit is not None:
        params.append(("limit", str(int(query.limit))))
    return params


class SupabaseListingStore:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.endpoint = f"{base_url.rstrip('/')}/rest/v1/{TABLE}"
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> dict:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    def _get(self, params: List[Tuple[str, str]]) -> List[dict]:
        try:
            r = self.session.get(self.endpoint, params=params, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Listings store unreachable: %s", e)
            raise StoreError("Listings store unavailable") from e
        if not 200 <= r.status_code < 300:
            logger.error("Listings store answered %s: %s", r.status_code, r.text[:500])
            raise StoreError("Listings store query failed")
        try:
            rows = r.json()
        except ValueError as e:
            raise StoreError("Listings store returned invalid JSON") from e
        if not isinstance(rows, list):
            raise StoreError("Listings store returned an unexpected payload")
        return rows

    def _listings(self, rows: List[dict]) -> List[Listing]:
        out: List[Listing] = []
        for row in rows:
            try:
                out.append(Listing.model_validate(row))
            except ValueError as e:
                logger.warning("Skipping malformed listing %s: %s", row.get("id"), e)
        return out

    def execute(self, query: ListingQuery) -> List[Listing]:
        return self._listings(self._get(query_params(query)))

    def find_by_suffix(self, short_id: str, clauses: Iterable[Clause] = ()) -> List[Listing]:
        # uuid columns cannot be pattern matched through the REST filters,
        # so fetch ids first and only the matching rows after.
        # The service key skips row level security, the scope clauses go on both requests
        if not short_id:
            return []
        scope = clause_params(clauses)
        rows = self._get([("select", "id")] + scope)
        ids = [str(r.get("id")) for r in rows if str(r.get("id", "")).endswith(short_id)]
        if not ids:
            return []
        return self._listings(self._get([("select", "*")] + scope + [("id", f"in.({','.join(ids)})")]))
