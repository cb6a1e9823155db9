"""Membership strategies: one native "any of" filter plus in-memory refinement.

* :class:`MembershipStrategy`: a category set *or* a tag set. One store
  query with the membership filter, sorted by ``createdAt`` desc, then the
  optional title substring is applied to the fetched rows.
* :class:`CombinedMembershipStrategy`: a category set *and* a tag set. The
  store filters on categories only, over-fetching
  :data:`COMBINED_OVERFETCH_FACTOR` times the page size; tag membership and
  the title substring are applied in memory. A short post-filtered page is
  returned as-is: there is no second round trip, and the page cursor resumes
  after the last row scanned.

Popularity is not part of these orderings; only the unfiltered feed ranks by
``popularityScore``.
"""

import logging
from typing import Literal

from ..pagination import RECENT_FIRST, PageRequest, RawPage, fetch_page, split_scanned
from ..records import PUBLISHED, RECIPES, Recipe
from ..store import DocumentStore, MembershipFilter
from .base import FilterSet, FilterStrategy

logger = logging.getLogger(__name__)

# Rows fetched per requested item when two membership filters are combined.
COMBINED_OVERFETCH_FACTOR = 5

MembershipField = Literal["categories", "tags"]


async def query_by_membership(
    store: DocumentStore,
    field: MembershipField,
    ids: list[str],
    page: PageRequest,
    fetch_size: int,
) -> list[Recipe]:
    """Published recipes whose ``field`` intersects ``ids``, newest first."""
    if not ids:
        return []
    docs = await fetch_page(
        store,
        RECIPES,
        page,
        RECENT_FIRST,
        equals={"status": PUBLISHED},
        membership=MembershipFilter(field, tuple(ids)),
        fetch_size=fetch_size,
    )
    return [Recipe.from_document(d) for d in docs]


class MembershipStrategy(FilterStrategy):
    """Single membership filter on ``categories`` or ``tags``."""

    def __init__(self, field: MembershipField):
        self.field = field

    @property
    def name(self) -> str:
        return f"by_{self.field}"

    async def fetch(
        self,
        store: DocumentStore,
        filters: FilterSet,
        page: PageRequest,
    ) -> RawPage[Recipe]:
        ids = filters.category_ids if self.field == "categories" else filters.tag_ids
        scanned = await query_by_membership(store, self.field, ids, page, page.fetch_size)
        recipes = scanned
        if filters.has_query:
            recipes = [r for r in scanned if r.matches_title(filters.query)]
        return split_scanned(recipes, scanned, page.limit, page.fetch_size)


class CombinedMembershipStrategy(FilterStrategy):
    """Category membership in the store, tag membership in memory."""

    @property
    def name(self) -> str:
        return "by_categories_and_tags"

    async def fetch(
        self,
        store: DocumentStore,
        filters: FilterSet,
        page: PageRequest,
    ) -> RawPage[Recipe]:
        fetch_size = page.limit * COMBINED_OVERFETCH_FACTOR
        scanned = await query_by_membership(
            store, "categories", filters.category_ids, page, fetch_size
        )
        fetched = len(scanned)
        recipes = [r for r in scanned if r.has_any_tag(filters.tag_ids)]
        if filters.has_query:
            recipes = [r for r in recipes if r.matches_title(filters.query)]
        if len(recipes) <= page.limit and fetched == fetch_size:
            logger.info(
                "Combined filter kept %d of %d over-fetched recipes; page may be short",
                len(recipes),
                fetched,
            )
        return split_scanned(recipes, scanned, page.limit, fetch_size)
