"""Recommended cooks: authors ranked by published-recipe count.

The store cannot group or count, so the aggregator scans a bounded slice of
published recipes and tallies authors in memory. With a query, the candidate
set is the union of authors with a matching recipe title and authors whose
profile name matches (resolved in batches of :data:`NAME_LOOKUP_BATCH`).
Candidates whose profile cannot be resolved are skipped, never failing the
whole list.
"""

import logging
from collections import Counter

from ..models import AuthorProfile, CookListItem, CookListResponse
from .pagination import clamp_limit
from .records import PUBLISHED, RECIPES, USERS, Recipe, UserProfile
from .social import SocialService
from .store import DocumentStore

logger = logging.getLogger(__name__)

# Published recipes scanned per request.
RECOMMENDED_COOKS_RECIPE_LIMIT = 2000

# User ids per batched profile lookup during name matching.
NAME_LOOKUP_BATCH = 10


class RecommendedCooksAggregator:
    def __init__(self, store: DocumentStore):
        self._store = store
        self.social = SocialService(store)

    async def _tally(self, query: str) -> tuple[Counter, set[str]]:
        docs = await self._store.query(
            RECIPES,
            equals={"status": PUBLISHED},
            limit=RECOMMENDED_COOKS_RECIPE_LIMIT,
        )
        counts: Counter = Counter()
        title_matches: set[str] = set()
        for doc in docs:
            recipe = Recipe.from_document(doc)
            if not recipe.author_id:
                continue
            counts[recipe.author_id] += 1
            if query and recipe.matches_title(query):
                title_matches.add(recipe.author_id)
        return counts, title_matches

    async def _name_matches(self, author_ids: list[str], query: str) -> set[str]:
        matches: set[str] = set()
        for start in range(0, len(author_ids), NAME_LOOKUP_BATCH):
            chunk = author_ids[start:start + NAME_LOOKUP_BATCH]
            for doc in await self._store.get_all(USERS, chunk):
                user = UserProfile.from_document(doc)
                if not user.is_deleted and query in user.name.lower():
                    matches.add(user.id)
        return matches

    async def _profile(self, author_id: str) -> AuthorProfile | None:
        doc = await self._store.get(USERS, author_id)
        if doc is None:
            return None
        user = UserProfile.from_document(doc)
        return None if user.is_deleted else AuthorProfile.from_record(user)

    async def recommend(
        self,
        caller_id: str | None = None,
        query: str | None = None,
        limit: int | None = None,
    ) -> CookListResponse:
        limit = clamp_limit(limit)
        needle = (query or "").strip().lower()

        counts, title_matches = await self._tally(needle)
        if needle:
            by_name = await self._name_matches(list(counts), needle)
            candidates = [a for a in counts if a in title_matches or a in by_name]
        else:
            candidates = list(counts)

        ranked = sorted(candidates, key=lambda a: -counts[a])[:limit]

        following = await self.social.following_ids(caller_id) if caller_id else set()

        items: list[CookListItem] = []
        for author_id in ranked:
            profile = await self._profile(author_id)
            if profile is None:
                logger.info("Skipping recommended cook %s: profile unavailable", author_id)
                continue
            items.append(CookListItem(
                profile=profile,
                recipes_count=counts[author_id],
                is_following=(author_id in following) if caller_id else None,
            ))
        return CookListResponse(items=items)
