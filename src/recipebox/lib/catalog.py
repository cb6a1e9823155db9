"""Read access to the category/tag reference catalog.

Loading and seeding the catalog is handled elsewhere; this module only reads
the ``categories`` and ``tags`` collections and validates ids against them.
"""

from ..errors import InvalidArgument
from .records import CATEGORIES, TAGS, CatalogItem
from .store import DocumentStore

# Upper bound on catalog size read in one query.
CATALOG_READ_LIMIT = 1000


class Catalog:
    def __init__(self, store: DocumentStore):
        self._store = store

    async def _items(self, collection: str) -> list[CatalogItem]:
        docs = await self._store.query(collection, limit=CATALOG_READ_LIMIT)
        items = [CatalogItem.from_document(d) for d in docs]
        return sorted(items, key=lambda item: item.id)

    async def categories(self) -> list[CatalogItem]:
        return await self._items(CATEGORIES)

    async def tags(self) -> list[CatalogItem]:
        return await self._items(TAGS)

    async def validate(
        self,
        category_ids: list[str] | None = None,
        tag_ids: list[str] | None = None,
    ) -> None:
        """Raise :class:`InvalidArgument` naming ids absent from the catalog."""
        if category_ids:
            known = {item.id for item in await self.categories()}
            unknown = [c for c in category_ids if c not in known]
            if unknown:
                raise InvalidArgument(f"Unknown categories: {', '.join(unknown)}")
        if tag_ids:
            known = {item.id for item in await self.tags()}
            unknown = [t for t in tag_ids if t not in known]
            if unknown:
                raise InvalidArgument(f"Unknown tags: {', '.join(unknown)}")
