"""Tests for the in-memory document store."""

import pytest

from .base import MembershipFilter, SortKey, StoreError, VersionConflictError, WriteOp
from .memory import MemoryStore


@pytest.fixture
def store():
    s = MemoryStore()
    s.put("recipes", "a", {"status": "published", "score": 2, "tags": ["x"]})
    s.put("recipes", "b", {"status": "published", "score": 5, "tags": ["y"]})
    s.put("recipes", "c", {"status": "draft", "score": 5, "tags": ["x", "y"]})
    s.put("recipes", "d", {"status": "published", "score": 2, "tags": []})
    return s


class TestQuery:
    @pytest.mark.asyncio
    async def test_equality_filter(self, store):
        docs = await store.query("recipes", equals={"status": "published"})
        assert {d.id for d in docs} == {"a", "b", "d"}

    @pytest.mark.asyncio
    async def test_null_equality_matches_missing_field(self, store):
        store.put("comments", "r1", {"parentId": None})
        store.put("comments", "r2", {})
        store.put("comments", "c1", {"parentId": "r1"})
        docs = await store.query("comments", equals={"parentId": None})
        assert {d.id for d in docs} == {"r1", "r2"}

    @pytest.mark.asyncio
    async def test_membership_on_array_field(self, store):
        docs = await store.query("recipes", membership=MembershipFilter("tags", ("y",)))
        assert {d.id for d in docs} == {"b", "c"}

    @pytest.mark.asyncio
    async def test_compound_sort_with_id_tie_break(self, store):
        order = [SortKey("score", descending=True), SortKey("id")]
        docs = await store.query("recipes", order_by=order)
        assert [d.id for d in docs] == ["b", "c", "a", "d"]

    @pytest.mark.asyncio
    async def test_resume_after_is_exclusive(self, store):
        order = [SortKey("score", descending=True), SortKey("id")]
        docs = await store.query("recipes", order_by=order, resume_after=[5, "c"], limit=1)
        assert [d.id for d in docs] == ["a"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("descending", [True, False])
    async def test_missing_sort_value_sorts_last(self, store, descending):
        store.put("recipes", "e", {"status": "published"})
        order = [SortKey("score", descending=descending), SortKey("id")]
        docs = await store.query("recipes", order_by=order)
        assert docs[-1].id == "e"

    @pytest.mark.asyncio
    async def test_missing_sort_value_takes_key_default(self, store):
        store.put("recipes", "e", {"status": "published"})
        store.put("recipes", "f", {"status": "published", "score": -1})
        order = [SortKey("score", descending=True, missing=3), SortKey("id")]
        docs = await store.query("recipes", order_by=order)
        assert [d.id for d in docs] == ["b", "c", "e", "a", "d", "f"]
        resumed = await store.query("recipes", order_by=order, resume_after=[3, "e"])
        assert [d.id for d in resumed] == ["a", "d", "f"]

    @pytest.mark.asyncio
    async def test_resume_after_length_mismatch(self, store):
        with pytest.raises(StoreError):
            await store.query("recipes", order_by=[SortKey("id")], resume_after=[1, "a"])

    @pytest.mark.asyncio
    async def test_records_queries(self, store):
        await store.query("recipes", equals={"status": "draft"}, limit=3)
        assert store.queries[-1]["equals"] == {"status": "draft"}
        assert store.queries[-1]["limit"] == 3


def test_membership_filter_capacity():
    with pytest.raises(ValueError):
        MembershipFilter("tags", tuple(str(i) for i in range(31)))


class TestBatchWrite:
    @pytest.mark.asyncio
    async def test_get_all_skips_missing_and_keeps_order(self, store):
        docs = await store.get_all("recipes", ["d", "zz", "a"])
        assert [d.id for d in docs] == ["d", "a"]

    @pytest.mark.asyncio
    async def test_update_merges_and_bumps_version(self, store):
        before = await store.get("recipes", "a")
        await store.batch_write([WriteOp.update("recipes", "a", {"score": 9})])
        after = await store.get("recipes", "a")
        assert after.data == {"status": "published", "score": 9, "tags": ["x"]}
        assert after.version != before.version

    @pytest.mark.asyncio
    async def test_version_conflict_applies_nothing(self, store):
        stale = await store.get("recipes", "a")
        await store.batch_write([WriteOp.update("recipes", "a", {"score": 3})])
        with pytest.raises(VersionConflictError):
            await store.batch_write([
                WriteOp.set("recipes", "e", {"score": 1}),
                WriteOp.update("recipes", "a", {"score": 4}, expected_version=stale.version),
            ])
        assert store.peek("recipes", "e") is None
        assert store.peek("recipes", "a")["score"] == 3

    @pytest.mark.asyncio
    async def test_update_missing_document_fails(self, store):
        with pytest.raises(StoreError):
            await store.batch_write([WriteOp.update("recipes", "nope", {"score": 1})])

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.batch_write([WriteOp.delete("recipes", "b")])
        assert await store.get("recipes", "b") is None
