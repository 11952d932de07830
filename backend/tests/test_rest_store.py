import pytest
import requests

from marketplace.errors import StoreError
from marketplace.models import FilterSet
from marketplace.query import detail_clauses, owner_query, pending_query, public_query
from marketplace.rest_store import SupabaseListingStore, query_params
from helpers import FakeResponse, FakeSession, make_listing

BASE = "https://abc.supabase.co"


def test_public_query_params():
    f = FilterSet(brand="Toyota", max_price=15000, location="Lisboa", search="corolla")
    params = query_params(public_query(f, limit=10))
    assert params == [
        ("select", "*"),
        ("is_sold", "eq.false"),
        ("is_approved", "eq.true"),
        ("brand", "ilike.Toyota"),
        ("price", "lte.15000"),
        ("location", "ilike.*Lisboa*"),
        ("or", '(title.ilike."*corolla*",brand.ilike."*corolla*",model.ilike."*corolla*")'),
        ("order", "created_at.desc,id.asc"),
        ("limit", "10"),
    ]


def test_like_wildcards_in_values_are_escaped():
    params = dict(query_params(public_query(FilterSet(model="A_4%"))))
    assert params["model"] == "ilike.A\\_4\\%"


def test_other_scopes():
    assert ("is_approved", "eq.false") in query_params(pending_query())
    assert ("user_id", "eq.owner-1") in query_params(owner_query("owner-1"))


def test_execute_parses_rows():
    session = FakeSession(FakeResponse(200, payload=[make_listing(1), make_listing(2, price="bad")]))
    store = SupabaseListingStore(BASE + "/", "service-key", session=session, timeout=3)
    cars = store.execute(public_query())
    # the malformed row is skipped
    assert [c.id for c in cars] == [make_listing(1)["id"]]
    url, kwargs = session.calls[0]
    assert url == BASE + "/rest/v1/cars"
    assert kwargs["headers"]["apikey"] == "service-key"
    assert kwargs["headers"]["Authorization"] == "Bearer service-key"
    assert kwargs["timeout"] == 3


def test_store_errors():
    for response in (FakeResponse(500, text="boom"), requests.Timeout("slow"), FakeResponse(200, text="<html>")):
        store = SupabaseListingStore(BASE, "k", session=FakeSession(response))
        with pytest.raises(StoreError):
            store.execute(public_query())


def test_find_by_suffix_fetches_matching_ids():
    ids = [{"id": make_listing(1)["id"]}, {"id": make_listing(2)["id"]}]
    session = FakeSession(FakeResponse(200, payload=ids), FakeResponse(200, payload=[make_listing(2)]))
    store = SupabaseListingStore(BASE, "k", session=session)
    cars = store.find_by_suffix("0000000002")
    assert [c.id for c in cars] == [make_listing(2)["id"]]
    assert session.calls[1][1]["params"][1] == ("id", f"in.({make_listing(2)['id']})")


def test_find_by_suffix_sends_scope_on_both_requests():
    ids = [{"id": make_listing(2)["id"]}]
    session = FakeSession(FakeResponse(200, payload=ids), FakeResponse(200, payload=[make_listing(2)]))
    store = SupabaseListingStore(BASE, "k", session=session)
    store.find_by_suffix("0000000002", detail_clauses())
    assert session.calls[0][1]["params"] == [("select", "id"), ("is_approved", "eq.true")]
    assert session.calls[1][1]["params"][:2] == [("select", "*"), ("is_approved", "eq.true")]
