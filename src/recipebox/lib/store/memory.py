"""In-process document store.

Implements the full :class:`DocumentStore` contract (atomic batches, version
checks, compound sorts with resume points) over plain dictionaries. Used for
local development (``STORE_BACKEND=memory``) and throughout the test suite.

Every operation runs without awaiting, so each call is atomic with respect to
other coroutines on the same event loop.
"""

import copy
import functools
import itertools
import logging
from typing import Any

from .base import (
    DocumentStore,
    MembershipFilter,
    SortKey,
    StoredDocument,
    StoreError,
    VersionConflictError,
    WriteOp,
)

logger = logging.getLogger(__name__)


def _compare_values(a: Any, b: Any) -> int:
    try:
        return (a > b) - (a < b)
    except TypeError:
        sa, sb = str(a), str(b)
        return (sa > sb) - (sa < sb)


def _compare_keys(a: list[Any], b: list[Any], order_by: list[SortKey]) -> int:
    for left, right, key in zip(a, b, order_by):
        # Missing values sort last in both directions.
        if left is None or right is None:
            c = (left is None) - (right is None)
        else:
            c = _compare_values(left, right)
            if key.descending:
                c = -c
        if c:
            return c
    return 0


def _field_value(doc_id: str, data: dict[str, Any], field: str) -> Any:
    if field == "id":
        return doc_id
    return data.get(field)


def _sort_value(doc_id: str, data: dict[str, Any], key: SortKey) -> Any:
    value = _field_value(doc_id, data, key.field)
    return key.missing if value is None else value


def _matches_membership(value: Any, membership: MembershipFilter) -> bool:
    wanted = set(membership.values)
    if isinstance(value, (list, tuple, set)):
        return any(v in wanted for v in value)
    return value in wanted


class MemoryStore(DocumentStore):
    """Dictionary-backed store honouring the full contract."""

    backend = "memory"

    def __init__(self):
        self._collections: dict[str, dict[str, tuple[dict[str, Any], str]]] = {}
        self._versions = itertools.count(1)
        self.reads = 0
        self.queries: list[dict[str, Any]] = []

    # -- helpers ------------------------------------------------------------

    def _next_version(self) -> str:
        return str(next(self._versions))

    def _collection(self, name: str) -> dict[str, tuple[dict[str, Any], str]]:
        return self._collections.setdefault(name, {})

    def _to_document(self, doc_id: str, entry: tuple[dict[str, Any], str]) -> StoredDocument:
        data, version = entry
        return StoredDocument(id=doc_id, data=copy.deepcopy(data), version=version)

    def put(self, collection: str, id: str, data: dict[str, Any]) -> StoredDocument:
        """Synchronously store a document, replacing any previous one."""
        entry = (copy.deepcopy(data), self._next_version())
        self._collection(collection)[id] = entry
        return self._to_document(id, entry)

    def peek(self, collection: str, id: str) -> dict[str, Any] | None:
        """Synchronous read of a document body, for assertions."""
        entry = self._collection(collection).get(id)
        return copy.deepcopy(entry[0]) if entry else None

    # -- contract -----------------------------------------------------------

    async def get(self, collection: str, id: str) -> StoredDocument | None:
        self.reads += 1
        entry = self._collection(collection).get(id)
        if entry is None:
            return None
        return self._to_document(id, entry)

    async def get_all(self, collection: str, ids: list[str]) -> list[StoredDocument]:
        self.reads += 1
        docs = self._collection(collection)
        return [self._to_document(i, docs[i]) for i in ids if i in docs]

    async def query(
        self,
        collection: str,
        *,
        equals: dict[str, Any] | None = None,
        membership: MembershipFilter | None = None,
        order_by: list[SortKey] | None = None,
        limit: int | None = None,
        resume_after: list[Any] | None = None,
    ) -> list[StoredDocument]:
        self.queries.append({
            "collection": collection,
            "equals": dict(equals or {}),
            "membership": membership,
            "order_by": list(order_by or []),
            "limit": limit,
            "resume_after": resume_after,
        })
        order_by = order_by or []
        if resume_after is not None and len(resume_after) != len(order_by):
            raise StoreError("resume_after must provide one value per sort key")

        rows: list[tuple[str, tuple[dict[str, Any], str]]] = []
        for doc_id, entry in self._collection(collection).items():
            data = entry[0]
            if equals and any(
                _field_value(doc_id, data, f) != v for f, v in equals.items()
            ):
                continue
            if membership is not None and not _matches_membership(
                _field_value(doc_id, data, membership.field), membership
            ):
                continue
            rows.append((doc_id, entry))

        if order_by:
            def sort_values(row):
                return [_sort_value(row[0], row[1][0], k) for k in order_by]

            rows.sort(key=functools.cmp_to_key(
                lambda a, b: _compare_keys(sort_values(a), sort_values(b), order_by)
            ))
            if resume_after is not None:
                rows = [
                    r for r in rows
                    if _compare_keys(sort_values(r), list(resume_after), order_by) > 0
                ]

        if limit is not None:
            rows = rows[:limit]
        return [self._to_document(doc_id, entry) for doc_id, entry in rows]

    async def batch_write(self, ops: list[WriteOp]) -> None:
        # Validate every precondition before touching anything.
        for op in ops:
            current = self._collection(op.collection).get(op.id)
            if op.expected_version is not None:
                if current is None or current[1] != op.expected_version:
                    raise VersionConflictError(
                        f"{op.collection}/{op.id}: expected version {op.expected_version}, "
                        f"found {current[1] if current else 'no document'}"
                    )
            if op.kind == "update" and current is None:
                raise StoreError(f"{op.collection}/{op.id}: cannot update a missing document")

        for op in ops:
            docs = self._collection(op.collection)
            if op.kind == "set":
                docs[op.id] = (copy.deepcopy(op.data), self._next_version())
            elif op.kind == "update":
                merged = {**docs[op.id][0], **copy.deepcopy(op.data)}
                docs[op.id] = (merged, self._next_version())
            elif op.kind == "delete":
                docs.pop(op.id, None)
            else:
                raise StoreError(f"unknown write op {op.kind!r}")
        logger.debug("Applied batch of %d write ops", len(ops))
