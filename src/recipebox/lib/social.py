"""Profiles and the follow graph.

A follow is stored under ``"{followerId}_{followingId}"`` so the pair is
unique by construction. Creating or removing it and adjusting both users'
counters happen in one batch guarded by the versions of the two user
documents; a concurrent follow/unfollow touching either user makes the batch
fail with a version conflict and the whole cycle is retried.
"""

import logging

from ..errors import Conflict, InvalidArgument, NotFound
from ..models import AuthorProfile, FollowResponse
from .records import FOLLOWS, USERS, Follow, UserProfile, follow_id
from .store import DocumentStore, SortKey, StoredDocument, VersionConflictError, WriteOp
from .timestamps import utcnow

logger = logging.getLogger(__name__)

MAX_FOLLOW_ATTEMPTS = 5

# Most recently created users scanned by a name search.
USER_SEARCH_WINDOW = 500


class SocialService:
    def __init__(self, store: DocumentStore, max_attempts: int = MAX_FOLLOW_ATTEMPTS):
        self._store = store
        self._max_attempts = max_attempts

    async def _active_user(self, user_id: str) -> tuple[StoredDocument, UserProfile]:
        doc = await self._store.get(USERS, user_id)
        if doc is None:
            raise NotFound("User not found")
        user = UserProfile.from_document(doc)
        if user.is_deleted:
            raise NotFound("User not found")
        return doc, user

    async def get_profile(self, user_id: str) -> AuthorProfile:
        _, user = await self._active_user(user_id)
        return AuthorProfile.from_record(user)

    async def search_users(self, query: str, limit: int) -> list[AuthorProfile]:
        """Active users whose name contains ``query``, newest accounts first.

        Only the :data:`USER_SEARCH_WINDOW` most recent accounts are scanned.
        """
        needle = query.strip().lower()
        if not needle:
            return []
        docs = await self._store.query(
            USERS,
            order_by=[SortKey("createdAt", descending=True), SortKey("id")],
            limit=USER_SEARCH_WINDOW,
        )
        found = []
        for doc in docs:
            user = UserProfile.from_document(doc)
            if user.is_deleted or needle not in user.name.lower():
                continue
            found.append(AuthorProfile.from_record(user))
            if len(found) >= limit:
                break
        return found

    async def following_ids(self, follower_id: str) -> set[str]:
        """Ids of every user ``follower_id`` follows, from one query."""
        docs = await self._store.query(FOLLOWS, equals={"followerId": follower_id})
        return {Follow.from_document(d).following_id for d in docs}

    async def _retry(self, action, *args):
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await action(*args)
            except VersionConflictError:
                logger.info("%s lost a race (attempt %d/%d)", action.__name__, attempt, self._max_attempts)
        raise Conflict("Concurrent update of follow counters, please retry")

    async def follow(self, follower_id: str, following_id: str) -> FollowResponse:
        if follower_id == following_id:
            raise InvalidArgument("Cannot follow yourself")
        return await self._retry(self._follow_once, follower_id, following_id)

    async def _follow_once(self, follower_id: str, following_id: str) -> FollowResponse:
        following_doc, following = await self._active_user(following_id)
        fid = follow_id(follower_id, following_id)
        if await self._store.get(FOLLOWS, fid) is not None:
            return FollowResponse(follower_id=follower_id, following_id=following_id)

        edge = Follow(id=fid, follower_id=follower_id, following_id=following_id, created_at=utcnow())
        ops = [
            WriteOp.set(FOLLOWS, fid, edge.to_store()),
            WriteOp.update(
                USERS,
                following_id,
                {"followersCount": following.followers_count + 1},
                expected_version=following_doc.version,
            ),
        ]
        follower_doc = await self._store.get(USERS, follower_id)
        if follower_doc is not None:
            follower = UserProfile.from_document(follower_doc)
            ops.append(WriteOp.update(
                USERS,
                follower_id,
                {"followingCount": follower.following_count + 1},
                expected_version=follower_doc.version,
            ))
        await self._store.batch_write(ops)
        return FollowResponse(follower_id=follower_id, following_id=following_id)

    async def unfollow(self, follower_id: str, following_id: str) -> None:
        await self._retry(self._unfollow_once, follower_id, following_id)

    async def _unfollow_once(self, follower_id: str, following_id: str) -> None:
        fid = follow_id(follower_id, following_id)
        edge = await self._store.get(FOLLOWS, fid)
        if edge is None:
            raise NotFound("You do not follow this user")

        ops = [WriteOp.delete(FOLLOWS, fid, expected_version=edge.version)]
        for user_id, counter in ((follower_id, "followingCount"), (following_id, "followersCount")):
            doc = await self._store.get(USERS, user_id)
            if doc is None:
                continue
            current = doc.data.get(counter) or 0
            ops.append(WriteOp.update(
                USERS, user_id, {counter: max(0, current - 1)}, expected_version=doc.version
            ))
        await self._store.batch_write(ops)
