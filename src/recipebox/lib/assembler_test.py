"""Tests for author and my-rating joins."""

import pytest

from .assembler import ResultAssembler
from .records import Recipe, UserProfile


async def _recipes(store, *ids):
    return [Recipe.from_document(d) for d in await store.get_all("recipes", list(ids))]


@pytest.mark.asyncio
async def test_one_batched_lookup_per_result_set(store, seed):
    seed.user("alice")
    seed.user("bob")
    for i in range(6):
        seed.recipe(f"r{i}", "alice" if i % 2 else "bob")
    recipes = await _recipes(store, *(f"r{i}" for i in range(6)))

    reads_before = store.reads
    items = await ResultAssembler(store).recipes(recipes, caller_id=None)

    assert len(items) == 6
    # Authors only; no rating lookup for an anonymous caller.
    assert store.reads - reads_before == 1


@pytest.mark.asyncio
async def test_drops_recipes_with_unavailable_author(store, seed):
    seed.user("alice")
    seed.user("gone", deleted=True)
    seed.recipe("a", "alice")
    seed.recipe("b", "gone")
    seed.recipe("c", "missing")
    items = await ResultAssembler(store).recipes(await _recipes(store, "a", "b", "c"))
    assert [i.id for i in items] == ["a"]


@pytest.mark.asyncio
async def test_single_recipe_keeps_missing_author_empty(store, seed):
    seed.recipe("c", "missing")
    (recipe,) = await _recipes(store, "c")
    item = await ResultAssembler(store).recipe(recipe)
    assert item.author is None


@pytest.mark.asyncio
async def test_attaches_my_rating(store, seed):
    seed.user("alice")
    seed.recipe("a", "alice")
    seed.recipe("b", "alice")
    store.put("ratings", "a_bob", {"recipeId": "a", "userId": "bob", "stars": 4})
    items = await ResultAssembler(store).recipes(await _recipes(store, "a", "b"), caller_id="bob")
    assert {i.id: i.my_rating for i in items} == {"a": 4, "b": None}


@pytest.mark.asyncio
async def test_resolve_authors_skips_deleted(store, seed):
    seed.user("alice")
    seed.user("gone", deleted=True)
    authors = await ResultAssembler(store).resolve_authors(["alice", "gone", "alice", None])
    assert list(authors) == ["alice"]
    assert authors["alice"].created_at == "2024-01-01T00:00:00.000Z"
    assert UserProfile.from_document(await store.get("users", "gone")).is_deleted
