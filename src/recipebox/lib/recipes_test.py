"""Tests for recipe reads and writes."""

import pytest

from ..conftest import at
from ..errors import Forbidden, InvalidArgument, NotFound
from ..models import RecipeCreateRequest, RecipeUpdateRequest
from .pagination import PageRequest
from .planner import FilterSet
from .recipes import RecipeService
from .records import RECIPES


@pytest.fixture
def kitchen(seed):
    seed.user("alice")
    seed.user("bob")
    seed.category("dessert")
    seed.category("dinner")
    seed.tag("vegan")
    seed.recipe("pub", "alice", title="Chocolate Cake", categories=["dessert"])
    seed.recipe("draft", "alice", title="Secret Cake", status="draft", categories=["dessert"])
    return seed


class TestVisibility:
    @pytest.mark.asyncio
    async def test_draft_visible_to_author_only(self, store, kitchen):
        service = RecipeService(store)
        assert (await service.get_by_id("draft", "alice")).status == "draft"
        with pytest.raises(NotFound):
            await service.get_by_id("draft", "bob")
        with pytest.raises(NotFound):
            await service.get_by_id("draft")

    @pytest.mark.asyncio
    async def test_listings_exclude_drafts(self, store, kitchen):
        service = RecipeService(store)
        feed = await service.feed(PageRequest(), "alice")
        assert [r.id for r in feed.items] == ["pub"]

        found = await service.list_filtered(FilterSet.from_params("cake"), PageRequest(), "alice")
        assert [r.id for r in found.items] == ["pub"]

    @pytest.mark.asyncio
    async def test_author_page_drafts(self, store, kitchen):
        service = RecipeService(store)
        own = await service.by_author("alice", "alice", PageRequest(), "draft")
        assert [r.id for r in own.items] == ["draft"]
        other = await service.by_author("alice", "bob", PageRequest(), "draft")
        assert other.items == []
        published = await service.by_author("alice", None, PageRequest())
        assert [r.id for r in published.items] == ["pub"]

    @pytest.mark.asyncio
    async def test_get_by_ids_keeps_request_order(self, store, kitchen):
        kitchen.recipe("pie", "bob", title="Apple Pie", categories=["dessert"])
        items = await RecipeService(store).get_by_ids(["pie", "draft", "ghost", "pub", "pie"], "bob")
        assert [r.id for r in items] == ["pie", "pub"]

        filtered = await RecipeService(store).get_by_ids(
            ["pie", "pub"], "bob", filters=FilterSet.from_params("cake")
        )
        assert [r.id for r in filtered] == ["pub"]


class TestFeed:
    @pytest.mark.asyncio
    async def test_ranked_by_popularity_then_recency(self, store, seed):
        seed.user("alice")
        seed.recipe("old_hit", "alice", popularityScore=9, created_at=at(1))
        seed.recipe("new", "alice", created_at=at(3))
        seed.recipe("older", "alice", created_at=at(2))
        feed = await RecipeService(store).feed(PageRequest())
        assert [r.id for r in feed.items] == ["old_hit", "new", "older"]

    @pytest.mark.asyncio
    async def test_pages_without_duplicates(self, store, seed):
        seed.user("alice")
        for i in range(25):
            seed.recipe(f"r{i:02d}", "alice", created_at=at(i % 3))
        service = RecipeService(store)

        first = await service.feed(PageRequest(limit=20))
        second = await service.feed(PageRequest(limit=20, cursor=first.next_cursor))

        ids = [r.id for r in first.items + second.items]
        assert len(ids) == 25 and len(set(ids)) == 25
        assert first.has_more and not second.has_more

    @pytest.mark.asyncio
    async def test_no_filters_lists_nothing(self, store, kitchen):
        page = await RecipeService(store).list_filtered(FilterSet(), PageRequest())
        assert page.items == [] and page.next_cursor is None


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_validates_catalog(self, store, kitchen):
        service = RecipeService(store)
        with pytest.raises(InvalidArgument, match="Unknown categories: brunch"):
            await service.create("bob", RecipeCreateRequest(title="Eggs", categories=["brunch"]))
        with pytest.raises(InvalidArgument, match="Unknown tags: keto"):
            await service.create("bob", RecipeCreateRequest(title="Eggs", tags=["keto"]))

    @pytest.mark.asyncio
    async def test_create_initialises_aggregates(self, store, kitchen):
        out = await RecipeService(store).create("bob", RecipeCreateRequest(
            title="  Lentil Soup ",
            ingredients="lentils",
            preparation_steps="boil",
            categories=["dinner"],
            tags=["vegan"],
        ))
        stored = store.peek(RECIPES, out.id)
        assert stored["titleLower"] == "lentil soup"
        assert stored["ratingsCount"] == 0
        assert out.description == "lentils\n\nboil"
        assert out.author.id == "bob"

    @pytest.mark.asyncio
    async def test_variation(self, store, kitchen):
        service = RecipeService(store)
        out = await service.create_variation(
            "pub", "bob", RecipeCreateRequest(title="Vegan Cake", status="draft")
        )
        assert out.is_variation and out.parent_recipe_id == "pub"
        assert out.status == "published"
        with pytest.raises(InvalidArgument):
            await service.create_variation("draft", "alice", RecipeCreateRequest(title="x"))
        with pytest.raises(NotFound):
            await service.create_variation("draft", "bob", RecipeCreateRequest(title="x"))

    @pytest.mark.asyncio
    async def test_update_by_author_only(self, store, kitchen):
        service = RecipeService(store)
        with pytest.raises(Forbidden):
            await service.update("pub", "bob", RecipeUpdateRequest(title="Mine now"))
        out = await service.update("pub", "alice", RecipeUpdateRequest(title="Fudge Cake", tags=None))
        assert out.title == "Fudge Cake"
        stored = store.peek(RECIPES, "pub")
        assert stored["titleLower"] == "fudge cake"
        assert stored["tags"] == []
        assert stored["categories"] == ["dessert"]

    @pytest.mark.asyncio
    async def test_delete(self, store, kitchen):
        service = RecipeService(store)
        with pytest.raises(Forbidden):
            await service.delete("pub", "bob")
        with pytest.raises(NotFound):
            await service.delete("draft", "bob")
        await service.delete("pub", "alice")
        assert store.peek(RECIPES, "pub") is None
