"""Tests for profiles and the follow graph."""

import pytest

from ..errors import Conflict, InvalidArgument, NotFound
from .records import FOLLOWS, USERS, follow_id
from .social import SocialService
from .store import MemoryStore


@pytest.fixture
def people(seed):
    seed.user("alice")
    seed.user("bob")
    seed.user("gone", deleted=True)
    return seed


class TestProfile:
    @pytest.mark.asyncio
    async def test_active_user(self, store, people):
        profile = await SocialService(store).get_profile("alice")
        assert profile.name == "Alice"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", ["gone", "nobody"])
    async def test_missing_or_deleted(self, store, people, user_id):
        with pytest.raises(NotFound):
            await SocialService(store).get_profile(user_id)


class TestFollow:
    @pytest.mark.asyncio
    async def test_follow_updates_both_counters(self, store, people):
        social = SocialService(store)
        await social.follow("alice", "bob")
        assert store.peek(FOLLOWS, follow_id("alice", "bob")) is not None
        assert store.peek(USERS, "bob")["followersCount"] == 1
        assert store.peek(USERS, "alice")["followingCount"] == 1
        assert await social.following_ids("alice") == {"bob"}

    @pytest.mark.asyncio
    async def test_follow_is_idempotent(self, store, people):
        social = SocialService(store)
        await social.follow("alice", "bob")
        await social.follow("alice", "bob")
        assert store.peek(USERS, "bob")["followersCount"] == 1

    @pytest.mark.asyncio
    async def test_cannot_follow_self_or_deleted(self, store, people):
        social = SocialService(store)
        with pytest.raises(InvalidArgument):
            await social.follow("alice", "alice")
        with pytest.raises(NotFound):
            await social.follow("alice", "gone")

    @pytest.mark.asyncio
    async def test_unfollow(self, store, people):
        social = SocialService(store)
        await social.follow("alice", "bob")
        await social.unfollow("alice", "bob")
        assert store.peek(FOLLOWS, follow_id("alice", "bob")) is None
        assert store.peek(USERS, "bob")["followersCount"] == 0
        assert store.peek(USERS, "alice")["followingCount"] == 0
        with pytest.raises(NotFound):
            await social.unfollow("alice", "bob")

    @pytest.mark.asyncio
    async def test_counter_never_negative(self, store, people):
        store.put(FOLLOWS, follow_id("alice", "bob"), {"followerId": "alice", "followingId": "bob"})
        await SocialService(store).unfollow("alice", "bob")
        assert store.peek(USERS, "bob")["followersCount"] == 0


class ContendedStore(MemoryStore):
    """Bumps bob's version before every batch so every write conflicts."""

    async def batch_write(self, ops):
        self.put(USERS, "bob", self.peek(USERS, "bob"))
        await super().batch_write(ops)


@pytest.mark.asyncio
async def test_follow_gives_up_under_contention():
    store = ContendedStore()
    store.put(USERS, "alice", {"name": "Alice"})
    store.put(USERS, "bob", {"name": "Bob"})
    with pytest.raises(Conflict):
        await SocialService(store, max_attempts=2).follow("alice", "bob")
    assert store.peek(FOLLOWS, follow_id("alice", "bob")) is None
