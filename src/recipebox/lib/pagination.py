"""Cursor pagination over compound sort orders.

A cursor is the id of the last item of the previous page. Decoding it costs
one point lookup that recovers that item's sort-key values, which become the
exclusive resume point of the next query. Pages are fetched with
``limit + 1`` rows: the extra row only signals that more data exists.

A cursor that no longer resolves (item deleted, garbage input) silently
restarts pagination from the beginning.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .store import DocumentStore, MembershipFilter, SortKey, StoredDocument

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 50

# Sort orders. The trailing id key breaks ties between equal sort values.
FEED_ORDER = [
    SortKey("popularityScore", descending=True, missing=0),
    SortKey("createdAt", descending=True),
    SortKey("id"),
]
RECENT_FIRST = [SortKey("createdAt", descending=True), SortKey("id")]

T = TypeVar("T")


def clamp_limit(value: Any, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    """Clamp a requested page size into ``[1, maximum]``.

    Missing, unparsable, zero or negative values fall back to ``default``.
    Limits are never rejected.
    """
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    if limit <= 0:
        return default
    return min(limit, maximum)


@dataclass(frozen=True)
class PageRequest:
    limit: int = DEFAULT_LIMIT
    cursor: str | None = None

    @classmethod
    def from_params(cls, limit: Any = None, cursor: str | None = None) -> "PageRequest":
        cursor = (cursor or "").strip() or None
        return cls(limit=clamp_limit(limit), cursor=cursor)

    @property
    def fetch_size(self) -> int:
        return self.limit + 1


@dataclass
class RawPage(Generic[T]):
    """One page of items plus the cursor to the next one."""

    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False

    @classmethod
    def empty(cls) -> "RawPage[T]":
        return cls()


class CursorCodec:
    """Encodes page cursors and decodes them into resume points for one sort order."""

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        order_by: list[SortKey],
    ):
        self._store = store
        self.collection = collection
        self.order_by = order_by

    @staticmethod
    def encode(last_item) -> str:
        return last_item.id

    def sort_values(self, doc: StoredDocument) -> list[Any]:
        values = []
        for key in self.order_by:
            if key.field == "id":
                values.append(doc.id)
            else:
                value = doc.data.get(key.field)
                values.append(key.missing if value is None else value)
        return values

    async def decode(self, cursor: str | None) -> list[Any] | None:
        """Return the resume point for ``cursor``, or ``None`` to start over."""
        if not cursor:
            return None
        doc = await self._store.get(self.collection, cursor)
        if doc is None:
            logger.info("Cursor %s not found in %s; restarting pagination", cursor, self.collection)
            return None
        return self.sort_values(doc)


def split_page(docs: list[T], limit: int) -> RawPage[T]:
    """Cut a ``limit + 1`` fetch into a page and its continuation cursor."""
    selected = docs[:limit]
    has_more = len(docs) > limit and bool(selected)
    next_cursor = CursorCodec.encode(selected[-1]) if has_more else None
    return RawPage(items=selected, next_cursor=next_cursor, has_more=has_more)


def split_scanned(matches: list[T], scanned: list, limit: int, fetch_size: int) -> RawPage[T]:
    """Page over ``matches`` kept in memory from a store fetch of ``scanned`` rows.

    When the filter leaves no more than ``limit`` matches but the fetch came
    back full, the page is short rather than final: its cursor resumes after
    the last scanned row so the next page continues the scan.
    """
    if len(matches) > limit:
        return split_page(matches, limit)
    if scanned and len(scanned) >= fetch_size:
        return RawPage(items=matches, next_cursor=CursorCodec.encode(scanned[-1]), has_more=True)
    return RawPage(items=matches)


async def fetch_page(
    store: DocumentStore,
    collection: str,
    page: PageRequest,
    order_by: list[SortKey],
    *,
    equals: dict[str, Any] | None = None,
    membership: MembershipFilter | None = None,
    fetch_size: int | None = None,
) -> list[StoredDocument]:
    """Resolve ``page.cursor`` and run the query from that resume point.

    Returns the raw rows (``page.fetch_size`` of them unless ``fetch_size``
    overrides it); callers post-filter and then :func:`split_page`.
    """
    codec = CursorCodec(store, collection, order_by)
    resume_after = await codec.decode(page.cursor)
    return await store.query(
        collection,
        equals=equals,
        membership=membership,
        order_by=order_by,
        limit=fetch_size if fetch_size is not None else page.fetch_size,
        resume_after=resume_after,
    )


async def paginate(
    store: DocumentStore,
    collection: str,
    page: PageRequest,
    order_by: list[SortKey],
    *,
    equals: dict[str, Any] | None = None,
    membership: MembershipFilter | None = None,
) -> RawPage[StoredDocument]:
    docs = await fetch_page(
        store, collection, page, order_by, equals=equals, membership=membership
    )
    return split_page(docs, page.limit)
