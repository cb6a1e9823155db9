"""Base abstraction for recipe listing strategies.

The store can apply one membership filter per query, so a listing that asks
for a title substring, a category set and a tag set at once has to be
emulated. Each supported combination is a named :class:`FilterStrategy`;
strategies are registered by name so they can be looked up from the planner,
listed, and targeted individually in tests.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..pagination import PageRequest, RawPage
from ..records import Recipe
from ..store import MAX_MEMBERSHIP_VALUES, DocumentStore


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

def _split_ids(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    ids: list[str] = []
    for raw in value:
        item = str(raw).strip()
        if item and item not in ids:
            ids.append(item)
    # Ids beyond the membership capacity are dropped, not rejected.
    return ids[:MAX_MEMBERSHIP_VALUES]


class FilterSet(BaseModel):
    """Normalised listing filters.

    ``query`` is trimmed and lowercased; id lists accept either a list or a
    comma-separated string and are trimmed, de-duplicated and capped at
    :data:`MAX_MEMBERSHIP_VALUES` entries.
    """

    query: str = Field("", description="Lowercased title substring")
    category_ids: list[str] = Field(default_factory=list)
    tag_ids: list[str] = Field(default_factory=list)

    @field_validator("query", mode="before")
    @classmethod
    def _normalise_query(cls, value):
        return (value or "").strip().lower()

    @field_validator("category_ids", "tag_ids", mode="before")
    @classmethod
    def _normalise_ids(cls, value):
        return _split_ids(value)

    @classmethod
    def from_params(
        cls,
        query: str | None = None,
        category_ids: str | list[str] | None = None,
        tag_ids: str | list[str] | None = None,
    ) -> "FilterSet":
        return cls(query=query, category_ids=category_ids, tag_ids=tag_ids)

    @property
    def has_query(self) -> bool:
        return bool(self.query)

    @property
    def has_categories(self) -> bool:
        return bool(self.category_ids)

    @property
    def has_tags(self) -> bool:
        return bool(self.tag_ids)

    @property
    def is_empty(self) -> bool:
        return not (self.has_query or self.has_categories or self.has_tags)

    def matches(self, recipe: Recipe) -> bool:
        """Apply every present filter in memory."""
        if self.has_query and not recipe.matches_title(self.query):
            return False
        if self.has_categories and not recipe.has_any_category(self.category_ids):
            return False
        if self.has_tags and not recipe.has_any_tag(self.tag_ids):
            return False
        return True


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class FilterStrategy(ABC):
    """Abstract base class for named listing strategies.

    Subclasses must implement ``name`` (property) and ``fetch``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name identifying this strategy (e.g. ``recent_window``)."""
        ...

    @abstractmethod
    async def fetch(
        self,
        store: DocumentStore,
        filters: FilterSet,
        page: PageRequest,
    ) -> RawPage[Recipe]:
        """Produce one page of published recipes matching ``filters``.

        Parameters
        ----------
        store:
            The document store handle.
        filters:
            Normalised filters; the planner guarantees they fit this strategy.
        page:
            Page size and cursor.

        Returns
        -------
        RawPage[Recipe]
        """
        ...


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_strategies: dict[str, FilterStrategy] = {}


def register_strategy(strategy: FilterStrategy) -> None:
    """Register a strategy instance by its name."""
    _strategies[strategy.name] = strategy


def get_strategy(name: str) -> FilterStrategy | None:
    """Look up a registered strategy by name.  Returns ``None`` if not found."""
    return _strategies.get(name)


def list_strategies() -> list[str]:
    """Return the names of all registered strategies."""
    return list(_strategies.keys())
