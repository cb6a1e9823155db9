"""Bounded recent-window title search.

Used when only a free-text query is present. The store has no substring
operator, so the strategy reads the :data:`RECENT_WINDOW_SIZE` most recent
published recipes in one bounded query and filters titles in memory.

Matches older than that window are unreachable. This is a deliberate
latency/completeness tradeoff, not an intermittent failure.

The cursor is the id of the last returned match; it is located inside the
filtered window on the next call. If it is no longer there the listing
restarts from the first match.
"""

import logging

from ..pagination import RECENT_FIRST, PageRequest, RawPage
from ..records import PUBLISHED, RECIPES, Recipe
from ..store import DocumentStore
from .base import FilterSet, FilterStrategy

logger = logging.getLogger(__name__)

# Number of most recent published recipes scanned per title search.
RECENT_WINDOW_SIZE = 500


async def load_recent_window(store: DocumentStore, size: int = RECENT_WINDOW_SIZE) -> list[Recipe]:
    docs = await store.query(
        RECIPES,
        equals={"status": PUBLISHED},
        order_by=RECENT_FIRST,
        limit=size,
    )
    return [Recipe.from_document(d) for d in docs]


class RecentWindowStrategy(FilterStrategy):
    @property
    def name(self) -> str:
        return "recent_window"

    async def fetch(
        self,
        store: DocumentStore,
        filters: FilterSet,
        page: PageRequest,
    ) -> RawPage[Recipe]:
        window = await load_recent_window(store)
        matches = [r for r in window if r.matches_title(filters.query)]

        start = 0
        if page.cursor:
            for idx, recipe in enumerate(matches):
                if recipe.id == page.cursor:
                    start = idx + 1
                    break
            else:
                logger.info("Search cursor %s outside the recent window; restarting", page.cursor)

        selected = matches[start:start + page.limit]
        has_more = len(matches) > start + page.limit and bool(selected)
        return RawPage(
            items=selected,
            next_cursor=selected[-1].id if has_more else None,
            has_more=has_more,
        )
