"""URL slugs for listing pages

A slug is the normalized title plus the last characters of the listing id
The title part is lossy so lookups go through the id suffix and only use the
full slug to break ties
"""

from __future__ import annotations
import re
from typing import TYPE_CHECKING, Iterable, Optional

from .models import Listing
from .query import detail_clauses

if TYPE_CHECKING:
    from .tools import ListingStore

SHORT_ID_LENGTH = 10

_UNSAFE = re.compile(r"[^a-z0-9\s-]")
_SPACES = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def slugify_title(title: str) -> str:
    t = _UNSAFE.sub("", (title or "").lower())
    t = _SPACES.sub("-", t)
    t = _DASHES.sub("-", t)
    return t.strip("-")


def encode(title: str, listing_id: str) -> str:
    return f"{slugify_title(title)}-{short_id(listing_id)}"


def short_id(listing_id: str) -> str:
    return str(listing_id)[-SHORT_ID_LENGTH:]


def decode(slug: str) -> str:
    """Return the id suffix carried by a slug, a lookup hint and not a full id"""
    return (slug or "").strip()[-SHORT_ID_LENGTH:]


def resolve(slug: str, candidates: Iterable[Listing]) -> Optional[Listing]:
    """Pick the listing a slug points to

    Candidates whose id does not end with the suffix are ignored. An exact slug
    match wins, otherwise the first suffix match does (renamed listings keep
    working). Two listings sharing both suffix and slug cannot be told apart
    """
    suffix = decode(slug)
    if not suffix:
        return None
    matches = [c for c in candidates if str(c.id).endswith(suffix)]
    for listing in matches:
        if encode(listing.title, listing.id) == slug:
            return listing
    return matches[0] if matches else None


def find_by_slug(store: "ListingStore", slug: str) -> Optional[Listing]:
    """Look up the listing behind a public detail page, unapproved ones are never returned"""
    suffix = decode(slug)
    if len(suffix) < SHORT_ID_LENGTH:
        return None
    return resolve(slug, store.find_by_suffix(suffix, detail_clauses()))
