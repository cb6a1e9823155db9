"""Chooses a listing strategy from the filters that are present.

=====  ==========  ======  ==========================
query  categories  tags    strategy
=====  ==========  ======  ==========================
no     no          no      ``empty``
yes    no          no      ``recent_window``
any    yes         no      ``by_categories``
any    no          yes     ``by_tags``
any    yes         yes     ``by_categories_and_tags``
=====  ==========  ======  ==========================
"""

import logging

from ..pagination import PageRequest, RawPage
from ..records import Recipe
from ..store import DocumentStore
from .base import FilterSet, FilterStrategy, get_strategy

logger = logging.getLogger(__name__)


class EmptyStrategy(FilterStrategy):
    """No filters at all: listings never fall back to a full-corpus scan."""

    @property
    def name(self) -> str:
        return "empty"

    async def fetch(
        self,
        store: DocumentStore,
        filters: FilterSet,
        page: PageRequest,
    ) -> RawPage[Recipe]:
        logger.info("No listing filters given; returning an empty page")
        return RawPage.empty()


class Planner:
    def plan(self, filters: FilterSet) -> FilterStrategy:
        if filters.is_empty:
            name = "empty"
        elif filters.has_categories and filters.has_tags:
            name = "by_categories_and_tags"
        elif filters.has_categories:
            name = "by_categories"
        elif filters.has_tags:
            name = "by_tags"
        else:
            name = "recent_window"
        strategy = get_strategy(name)
        if strategy is None:
            raise LookupError(f"listing strategy {name!r} is not registered")
        return strategy
