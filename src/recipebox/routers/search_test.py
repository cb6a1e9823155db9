"""Tests for the search router."""

import pytest


@pytest.fixture(autouse=True)
def corpus(seed):
    seed.user("alice")
    seed.recipe("a", "alice", title="Green Curry", categories=["thai"], tags=["spicy"])
    seed.recipe("b", "alice", title="Pad Thai", categories=["thai"], tags=["noodles"])
    seed.recipe("c", "alice", title="Green Salad", categories=["salads"], tags=["vegan"])
    return seed


def _ids(resp):
    assert resp.status_code == 200
    return [r["id"] for r in resp.json()["items"]]


def test_no_filters_returns_empty(api_client):
    assert _ids(api_client.get("/search")) == []


def test_title_search(api_client):
    assert _ids(api_client.get("/search", params={"query": "green"})) == ["c", "a"]


def test_category_and_query(api_client):
    assert _ids(api_client.get("/search", params={"query": "green", "categoryIds": "thai"})) == ["a"]


def test_tags_comma_list(api_client):
    assert _ids(api_client.get("/search", params={"tagIds": "vegan, noodles"})) == ["c", "b"]


def test_categories_and_tags(api_client):
    assert _ids(api_client.get("/search", params={"categoryIds": "thai", "tagIds": "noodles"})) == ["b"]


def test_pagination_cursor(api_client):
    first = api_client.get("/search", params={"query": "green", "limit": 1}).json()
    assert first["hasMore"] is True
    second = api_client.get(
        "/search", params={"query": "green", "limit": 1, "cursor": first["nextCursor"]}
    ).json()
    assert [r["id"] for r in second["items"]] == ["a"]
    assert second["hasMore"] is False


def _user_ids(resp):
    assert resp.status_code == 200
    return [u["id"] for u in resp.json()["users"]]


def test_query_matches_user_names(api_client, seed):
    seed.user("gina", name="Gina Greenwood")
    seed.user("ghost", name="Green Ghost", deleted=True)
    seed.user("bob")
    resp = api_client.get("/search", params={"query": "GREEN"})
    assert _user_ids(resp) == ["gina"]
    assert resp.json()["users"][0]["name"] == "Gina Greenwood"


def test_user_matches_capped_by_limit(api_client, seed):
    seed.user("gina", name="Gina Greenwood")
    seed.user("greta", name="Greta Greenfield")
    assert len(_user_ids(api_client.get("/search", params={"query": "green", "limit": 1}))) == 1


def test_users_only_on_first_page_of_a_query(api_client, seed):
    seed.user("gina", name="Gina Greenwood")
    first = api_client.get("/search", params={"query": "green", "limit": 1})
    assert _user_ids(first) == ["gina"]
    second = api_client.get(
        "/search", params={"query": "green", "limit": 1, "cursor": first.json()["nextCursor"]}
    )
    assert _user_ids(second) == []


def test_filters_without_query_list_no_users(api_client):
    assert _user_ids(api_client.get("/search", params={"categoryIds": "thai"})) == []


def test_list_strategies(api_client):
    resp = api_client.get("/search/strategies")
    assert resp.status_code == 200
    assert "recent_window" in resp.json()["strategies"]
