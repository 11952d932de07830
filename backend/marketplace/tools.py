from __future__ import annotations
import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Protocol
import pandas as pd

from .models import FilterSet, Listing
from .query import Clause, ListingQuery, Op, filter_clauses

logger = logging.getLogger(__name__)

TEXT_COLUMNS = [
    "id", "user_id", "title", "brand", "model", "fuel_type", "transmission", "body_type",
    "color", "location", "description", "approved_by", "approved_at", "created_at", "updated_at",
]
NUMBER_COLUMNS = ["year", "price", "mileage"]
FLAG_COLUMNS = ["is_sold", "is_approved"]

_TRUE = {"true", "t", "1", "yes", "y", "sim"}


class ListingStore(Protocol):
    def execute(self, query: ListingQuery) -> List[Listing]: ...

    def find_by_suffix(self, short_id: str, clauses: Iterable[Clause] = ()) -> List[Listing]: ...


def _flag(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if v is None or (isinstance(v, float) and v != v):
        return False
    return str(v).strip().lower() in _TRUE


def _images(v: Any) -> List[str]:
    # CSV rows keep images as "url1|url2", API rows as lists
    if isinstance(v, (list, tuple)):
        return [str(u) for u in v if u]
    if isinstance(v, str) and v.strip():
        return [u.strip() for u in v.split("|") if u.strip()]
    return []


def _cell_text(v: Any) -> Optional[str]:
    if v is None or (isinstance(v, float) and v != v):
        return None
    return str(v) if str(v) != "" else None


def normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    # Make sure every column the queries touch exists with a usable dtype
    df = df.copy()
    for col in TEXT_COLUMNS:
        if col not in df.columns:
            df[col] = None
        df[col] = df[col].map(_cell_text).astype(object)
    for col in NUMBER_COLUMNS:
        if col not in df.columns:
            df[col] = None
        df[col] = pd.to_numeric(df[col], errors="coerce")
    for col in FLAG_COLUMNS:
        if col not in df.columns:
            df[col] = False
        df[col] = df[col].map(_flag).astype(bool)
    if "images" not in df.columns:
        df["images"] = None
    df["images"] = df["images"].map(_images)
    return df.reset_index(drop=True)


def _text_mask(series: pd.Series, op: Op, value: Any) -> pd.Series:
    text = str(value)
    if op == Op.IEQ:
        return series.str.lower() == text.lower()
    return series.str.contains(text, case=False, na=False, regex=False)


def apply_clauses(df: pd.DataFrame, clauses: Iterable[Clause]) -> pd.DataFrame:
    # Filter the dataframe clause by clause, every clause narrows the result
    out = df
    for c in clauses:
        if c.op == Op.EQ:
            out = out[out[c.column] == c.value]
        elif c.op in (Op.IEQ, Op.CONTAINS):
            out = out[_text_mask(out[c.column], c.op, c.value).fillna(False).astype(bool)]
        elif c.op == Op.GTE:
            out = out[pd.to_numeric(out[c.column], errors="coerce") >= c.value]
        elif c.op == Op.LTE:
            out = out[pd.to_numeric(out[c.column], errors="coerce") <= c.value]
        elif c.op == Op.ANY_CONTAINS:
            mask = pd.Series(False, index=out.index)
            for col in c.columns:
                mask = mask | _text_mask(out[col], Op.CONTAINS, c.value).astype(bool)
            out = out[mask]
        else:
            raise ValueError(f"unsupported clause op {c.op}")
    return out


def apply_filters(df: pd.DataFrame, f: FilterSet) -> pd.DataFrame:
    return apply_clauses(df, filter_clauses(f))


def sort_listings(df: pd.DataFrame, order) -> pd.DataFrame:
    if df.empty or not order:
        return df
    keys = []
    ascending = []
    tmp = df.copy()
    for i, (col, desc) in enumerate(order):
        key = f"_sort{i}"
        if col.endswith("_at"):
            tmp[key] = pd.to_datetime(tmp[col], errors="coerce", utc=True, format="ISO8601")
        else:
            tmp[key] = tmp[col]
        keys.append(key)
        ascending.append(not desc)
    # mergesort keeps the sort stable when keys tie
    tmp = tmp.sort_values(keys, ascending=ascending, kind="mergesort", na_position="last")
    return tmp.drop(columns=keys)


def _to_listings(df: pd.DataFrame) -> List[Listing]:
    # to_json turns numpy scalars and NaN into plain JSON values pydantic understands
    records = json.loads(df.to_json(orient="records", force_ascii=False))
    out: List[Listing] = []
    for r in records:
        try:
            out.append(Listing.model_validate(r))
        except ValueError as e:
            logger.warning("Skipping malformed listing %s: %s", r.get("id"), e)
    return out


class ListingCatalog:
    """In memory listings store backed by a pandas dataframe

    Used for local development and tests, the hosted store answers the same queries
    """

    def __init__(self, df: pd.DataFrame):
        self.df = normalize_frame(df)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "ListingCatalog":
        return cls(pd.DataFrame(list(records)))

    @classmethod
    def from_csv(cls, csv_path: str) -> "ListingCatalog":
        if not os.path.isfile(csv_path):
            raise FileNotFoundError(csv_path)
        try:
            df = pd.read_csv(csv_path, dtype=str, keep_default_na=False, engine="c")
        except Exception:
            # More forgiving with quotes, skip what still does not parse
            df = pd.read_csv(
                csv_path,
                dtype=str,
                keep_default_na=False,
                engine="python",
                on_bad_lines="skip",
            )
            logger.warning("Loaded %s with the lenient parser, malformed rows were skipped", csv_path)
        logger.info("Loaded %d listings from %s", len(df), csv_path)
        return cls(df)

    @classmethod
    def empty(cls) -> "ListingCatalog":
        return cls(pd.DataFrame(columns=TEXT_COLUMNS + NUMBER_COLUMNS + FLAG_COLUMNS + ["images"]))

    def __len__(self) -> int:
        return len(self.df)

    def execute(self, query: ListingQuery) -> List[Listing]:
        out = sort_listings(apply_clauses(self.df, query.clauses), query.order)
        if query.limit is not None:
            out = out.head(query.limit)
        return _to_listings(out)

    def find_by_suffix(self, short_id: str, clauses: Iterable[Clause] = ()) -> List[Listing]:
        if not short_id:
            return []
        rows = apply_clauses(self.df, clauses)
        ids = rows["id"].fillna("").astype(str)
        return _to_listings(rows[ids.str.endswith(short_id)])
