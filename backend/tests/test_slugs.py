import re

from marketplace.models import Listing
from marketplace.slugs import decode, encode, find_by_slug, resolve
from helpers import make_catalog, make_listing

LISTING_ID = "3f1c2a90-5b7d-4e0a-9c1e-1a2b3c4d5e03"


def listing(n, **overrides):
    return Listing.model_validate(make_listing(n, **overrides))


def test_encode_title_and_suffix():
    assert encode("BMW 320d Line Sport!", LISTING_ID) == "bmw-320d-line-sport-2b3c4d5e03"


# Accented letters are dropped, not transliterated
def test_encode_strips_unsafe_characters():
    assert encode("Peugeot 3008 Série Ótima", LISTING_ID) == "peugeot-3008-srie-tima-2b3c4d5e03"
    assert encode("  --Golf   GTI-- ", LISTING_ID) == "golf-gti-2b3c4d5e03"


def test_encode_shape_and_idempotence():
    slug = encode("Renault Clio 1.0 TCe (2021)", LISTING_ID)
    assert re.fullmatch(r"[a-z0-9-]*-[a-z0-9]{10}", slug)
    assert slug.endswith(LISTING_ID[-10:])
    assert encode("Renault Clio 1.0 TCe (2021)", LISTING_ID) == slug


def test_decode_returns_suffix():
    assert decode("bmw-320d-line-sport-2b3c4d5e03") == "2b3c4d5e03"


def test_resolve_prefers_exact_slug():
    a = listing(1, title="Toyota Corolla")
    b = listing(1, title="Toyota Yaris")
    assert resolve(encode("Toyota Yaris", b.id), [a, b]) is b


# A renamed listing is still found through its suffix
def test_resolve_falls_back_to_first_suffix_match():
    a = listing(1, title="Toyota Corolla")
    assert resolve(f"old-title-{a.id[-10:]}", [listing(2), a]) is a
    assert resolve("old-title-zzzzzzzzzz", [a]) is None


def test_find_by_slug_in_catalog():
    catalog = make_catalog()
    car = listing(3, title="BMW 320d Line Sport")
    assert find_by_slug(catalog, encode(car.title, car.id)).id == car.id
    assert find_by_slug(catalog, "short") is None


def test_find_by_slug_skips_unapproved_listings():
    catalog = make_catalog()
    pending = listing(5, title="Tesla Model 3")
    assert find_by_slug(catalog, encode(pending.title, pending.id)) is None
