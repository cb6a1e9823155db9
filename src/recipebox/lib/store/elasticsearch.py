"""Elasticsearch-backed document store.

Each collection is an index named ``{prefix}{collection}``. The contract maps
onto the Elasticsearch APIs as follows:

* ``get`` / ``get_all`` → ``GET`` / ``mget``
* ``query`` → ``search`` with a ``bool`` filter (``term`` for equality,
  ``must_not exists`` for null equality, ``terms`` for membership), ``sort``
  and ``search_after``
* ``batch_write`` → ``mget`` of the touched documents, then ``bulk`` with
  ``refresh="wait_for"`` so that the writes are visible to the next query
* document versions → ``_seq_no`` / ``_primary_term``, checked on writes via
  ``if_seq_no`` / ``if_primary_term``

Elasticsearch only guarantees atomicity per document. Batches are made
all-or-nothing on top of that: version checks run against the ``mget``
snapshot before writing, and when an item of the bulk still fails the items
that were applied are restored from the snapshot.
"""

import logging
from datetime import datetime
from typing import Any

from elastic_transport import ObjectApiResponse
from elasticsearch import ApiError, NotFoundError, TransportError

from ..timestamps import to_datetime
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

# Largest page Elasticsearch serves without scrolling.
MAX_RESULT_WINDOW = 10_000

# Source field holding the document id, used for id tie-break sorting.
ID_FIELD = "docId"

_KEYWORD = {"type": "keyword"}
_DATE = {"type": "date"}

MAPPINGS: dict[str, dict[str, Any]] = {
    "recipes": {
        "properties": {
            ID_FIELD: _KEYWORD,
            "authorId": _KEYWORD,
            "title": {"type": "text", "fields": {"raw": _KEYWORD}},
            "titleLower": _KEYWORD,
            "categories": _KEYWORD,
            "tags": _KEYWORD,
            "status": _KEYWORD,
            "parentRecipeId": _KEYWORD,
            "isVariation": {"type": "boolean"},
            "ratingAvg": {"type": "float"},
            "ratingsCount": {"type": "integer"},
            "popularityScore": {"type": "float"},
            "createdAt": _DATE,
        }
    },
    "ratings": {
        "properties": {
            ID_FIELD: _KEYWORD,
            "recipeId": _KEYWORD,
            "userId": _KEYWORD,
            "stars": {"type": "short"},
        }
    },
    "comments": {
        "properties": {
            ID_FIELD: _KEYWORD,
            "recipeId": _KEYWORD,
            "authorId": _KEYWORD,
            "parentId": _KEYWORD,
            "text": {"type": "text"},
            "createdAt": _DATE,
        }
    },
    "follows": {
        "properties": {
            ID_FIELD: _KEYWORD,
            "followerId": _KEYWORD,
            "followingId": _KEYWORD,
            "createdAt": _DATE,
        }
    },
    "users": {
        "properties": {
            ID_FIELD: _KEYWORD,
            "name": {"type": "text", "fields": {"raw": _KEYWORD}},
            "email": _KEYWORD,
            "followersCount": {"type": "integer"},
            "followingCount": {"type": "integer"},
            "popularityScore": {"type": "float"},
            "createdAt": _DATE,
            "deletedAt": _DATE,
        }
    },
    "categories": {"properties": {ID_FIELD: _KEYWORD}},
    "tags": {"properties": {ID_FIELD: _KEYWORD}},
}


def unwrap_es_response(resp) -> dict:
    """Unwrap an Elasticsearch response, handling both ObjectApiResponse and dict."""
    if isinstance(resp, ObjectApiResponse):
        return resp.body
    if isinstance(resp, dict):
        return resp
    logger.error("Unexpected Elasticsearch response type: %s", type(resp))
    raise StoreError("Invalid Elasticsearch response")


def _encode_version(hit: dict) -> str | None:
    seq_no = hit.get("_seq_no")
    primary_term = hit.get("_primary_term")
    if seq_no is None or primary_term is None:
        return None
    return f"{seq_no}:{primary_term}"


def _decode_version(version: str) -> dict[str, int]:
    try:
        seq_no, primary_term = version.split(":", 1)
        return {"if_seq_no": int(seq_no), "if_primary_term": int(primary_term)}
    except ValueError as exc:
        raise StoreError(f"Malformed document version {version!r}") from exc


def _to_document(hit: dict) -> StoredDocument:
    source = dict(hit.get("_source") or {})
    source.pop(ID_FIELD, None)
    return StoredDocument(id=hit["_id"], data=source, version=_encode_version(hit))


def _sort_field(field: str) -> str:
    return ID_FIELD if field == "id" else field


def _sort_clause(key: SortKey) -> dict:
    clause: dict[str, Any] = {"order": "desc" if key.descending else "asc"}
    if key.missing is not None:
        clause["missing"] = key.missing
    return {_sort_field(key.field): clause}


def _is_date_field(collection: str, field: str) -> bool:
    prop = MAPPINGS.get(collection, {}).get("properties", {}).get(field, {})
    return prop.get("type") == "date"


def _search_after_value(collection: str, key: SortKey, value: Any) -> Any:
    # Date sort values are compared as epoch milliseconds.
    if _is_date_field(collection, key.field):
        dt = to_datetime(value)
        if dt is not None:
            return int(dt.timestamp() * 1000)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class ElasticsearchStore(DocumentStore):
    """Document store over an ``AsyncElasticsearch`` client."""

    backend = "elasticsearch"

    def __init__(self, es, index_prefix: str = ""):
        self._es = es
        self._prefix = index_prefix

    def index_name(self, collection: str) -> str:
        return f"{self._prefix}{collection}"

    async def ensure_indices(self) -> None:
        """Create any missing index with its keyword/date mappings."""
        for collection, mappings in MAPPINGS.items():
            index = self.index_name(collection)
            try:
                exists = await self._es.indices.exists(index=index)
                if not exists:
                    await self._es.indices.create(index=index, mappings=mappings)
                    logger.info("Created index %s", index)
            except (ApiError, TransportError) as exc:
                raise StoreError(f"Could not prepare index {index}") from exc

    async def get(self, collection: str, id: str) -> StoredDocument | None:
        try:
            resp = await self._es.get(index=self.index_name(collection), id=id)
        except NotFoundError:
            return None
        except (ApiError, TransportError) as exc:
            raise StoreError(f"get {collection}/{id} failed") from exc
        data = unwrap_es_response(resp)
        if not data.get("found", True):
            return None
        return _to_document(data)

    async def get_all(self, collection: str, ids: list[str]) -> list[StoredDocument]:
        if not ids:
            return []
        try:
            resp = await self._es.mget(index=self.index_name(collection), ids=list(ids))
        except (ApiError, TransportError) as exc:
            raise StoreError(f"mget {collection} failed") from exc
        data = unwrap_es_response(resp)
        return [_to_document(d) for d in data.get("docs", []) if d.get("found")]

    def build_query(
        self,
        equals: dict[str, Any] | None,
        membership: MembershipFilter | None,
    ) -> dict:
        filters: list[dict] = []
        must_not: list[dict] = []
        for field, value in (equals or {}).items():
            if value is None:
                must_not.append({"exists": {"field": _sort_field(field)}})
            else:
                filters.append({"term": {_sort_field(field): value}})
        if membership is not None:
            filters.append({"terms": {_sort_field(membership.field): list(membership.values)}})
        query: dict = {"bool": {"filter": filters}}
        if must_not:
            query["bool"]["must_not"] = must_not
        return query

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
        kwargs: dict[str, Any] = {
            "index": self.index_name(collection),
            "query": self.build_query(equals, membership),
            "size": min(limit, MAX_RESULT_WINDOW) if limit is not None else MAX_RESULT_WINDOW,
            "seq_no_primary_term": True,
        }
        if order_by:
            kwargs["sort"] = [_sort_clause(k) for k in order_by]
        if resume_after is not None:
            if len(resume_after) != len(order_by or []):
                raise StoreError("resume_after must provide one value per sort key")
            kwargs["search_after"] = [
                _search_after_value(collection, k, v)
                for k, v in zip(order_by or [], resume_after)
            ]

        try:
            resp = await self._es.search(**kwargs)
        except (ApiError, TransportError) as exc:
            raise StoreError(f"search {collection} failed") from exc
        data = unwrap_es_response(resp)
        return [_to_document(hit) for hit in data.get("hits", {}).get("hits", [])]

    def build_operations(self, ops: list[WriteOp]) -> list[dict]:
        operations: list[dict] = []
        for op in ops:
            meta: dict[str, Any] = {"_index": self.index_name(op.collection), "_id": op.id}
            if op.expected_version is not None:
                meta.update(_decode_version(op.expected_version))
            if op.kind == "set":
                operations.append({"index": meta})
                operations.append({**op.data, ID_FIELD: op.id})
            elif op.kind == "update":
                operations.append({"update": meta})
                operations.append({"doc": op.data})
            elif op.kind == "delete":
                operations.append({"delete": meta})
            else:
                raise StoreError(f"unknown write op {op.kind!r}")
        return operations

    async def _before_images(self, ops: list[WriteOp]) -> dict[tuple[str, str], StoredDocument]:
        ids_by_collection: dict[str, list[str]] = {}
        for op in ops:
            ids = ids_by_collection.setdefault(op.collection, [])
            if op.id not in ids:
                ids.append(op.id)
        images: dict[tuple[str, str], StoredDocument] = {}
        for collection, ids in ids_by_collection.items():
            for doc in await self.get_all(collection, ids):
                images[(collection, doc.id)] = doc
        return images

    @staticmethod
    def _check_preconditions(
        ops: list[WriteOp], images: dict[tuple[str, str], StoredDocument]
    ) -> None:
        for op in ops:
            current = images.get((op.collection, op.id))
            if op.expected_version is not None:
                if current is None or current.version != op.expected_version:
                    raise VersionConflictError(
                        f"{op.collection}/{op.id}: expected version {op.expected_version}, "
                        f"found {current.version if current else 'no document'}"
                    )
            if op.kind == "update" and current is None:
                raise StoreError(f"{op.collection}/{op.id}: cannot update a missing document")

    def build_compensation(
        self,
        ops: list[WriteOp],
        items: list[dict],
        images: dict[tuple[str, str], StoredDocument],
    ) -> list[dict]:
        """Operations that put every document written by a failed bulk back.

        Each restore is guarded by the version the bulk left behind, so a
        document changed by someone else since is never overwritten.
        """
        applied: dict[tuple[str, str], dict] = {}
        for op, item in zip(ops, items):
            action, result = next(iter(item.items()), (None, {}))
            if "error" in result or result.get("result") in (None, "noop", "not_found"):
                continue
            applied[(op.collection, op.id)] = {"action": action, **result}

        operations: list[dict] = []
        for (collection, doc_id), result in applied.items():
            meta: dict[str, Any] = {"_index": self.index_name(collection), "_id": doc_id}
            before = images.get((collection, doc_id))
            if result["action"] == "delete":
                if before is not None:
                    operations.append({"create": meta})
                    operations.append({**before.data, ID_FIELD: doc_id})
                continue
            meta["if_seq_no"] = result.get("_seq_no")
            meta["if_primary_term"] = result.get("_primary_term")
            if before is None:
                operations.append({"delete": meta})
            else:
                operations.append({"index": meta})
                operations.append({**before.data, ID_FIELD: doc_id})
        return operations

    async def _bulk(self, operations: list[dict]) -> dict:
        try:
            resp = await self._es.bulk(operations=operations, refresh="wait_for")
        except (ApiError, TransportError) as exc:
            raise StoreError("bulk write failed") from exc
        return unwrap_es_response(resp)

    async def batch_write(self, ops: list[WriteOp]) -> None:
        """Apply ``ops`` all-or-nothing.

        Version checks run against a snapshot before anything is written. If
        an item still fails inside the bulk (a rival write slipped in between),
        the items that were applied are rolled back before the error is raised.
        """
        if not ops:
            return
        images = await self._before_images(ops)
        self._check_preconditions(ops, images)

        data = await self._bulk(self.build_operations(ops))
        if not data.get("errors"):
            return

        items = data.get("items", [])
        conflict = None
        failure = None
        for item in items:
            result = next(iter(item.values()), {})
            if "error" not in result:
                continue
            if result.get("status") == 409:
                conflict = conflict or result
            else:
                failure = failure or result

        compensation = self.build_compensation(ops, items, images)
        if compensation:
            undo = await self._bulk(compensation)
            if undo.get("errors"):
                logger.error("Rollback of a failed bulk write was incomplete: %s", undo.get("items"))
                raise StoreError("bulk write failed and could not be rolled back")
            logger.info("Rolled back a failed bulk write of %d ops", len(ops))

        if failure is not None:
            logger.error("Bulk item failed: %s", failure.get("error"))
            raise StoreError(f"bulk write item failed on {failure.get('_index')}/{failure.get('_id')}")
        if conflict is not None:
            raise VersionConflictError(
                f"{conflict.get('_index')}/{conflict.get('_id')}: version conflict"
            )
