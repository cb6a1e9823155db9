"""Document store contract consumed by the core.

The store offers point lookups, batched point lookups, a single filtered and
sorted query shape, and atomic write batches. It cannot join, cannot combine
two membership filters in one query, and caps membership filters at
:data:`MAX_MEMBERSHIP_VALUES` values.

Every document carries an opaque ``version`` token that changes whenever the
document is written. Write ops may name the version they expect; a mismatch
rejects the whole batch.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal

# Capacity of a single membership ("any of") filter.
MAX_MEMBERSHIP_VALUES = 30


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class StoreError(Exception):
    """The store could not serve the request."""


class VersionConflictError(StoreError):
    """A write op's ``expected_version`` did not match the stored document."""


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StoredDocument:
    id: str
    data: dict[str, Any]
    version: str | None = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass(frozen=True)
class SortKey:
    """One key of a compound sort.

    Documents lacking ``field`` sort as if they held ``missing``. Without a
    ``missing`` value they sort after every present value, in either
    direction.
    """

    field: str
    descending: bool = False
    missing: Any = None


@dataclass(frozen=True)
class MembershipFilter:
    """Matches documents whose ``field`` (scalar or array) intersects ``values``."""

    field: str
    values: tuple[str, ...]

    def __post_init__(self):
        if len(self.values) > MAX_MEMBERSHIP_VALUES:
            raise ValueError(
                f"membership filter on {self.field!r} has {len(self.values)} values, "
                f"max is {MAX_MEMBERSHIP_VALUES}"
            )


@dataclass(frozen=True)
class WriteOp:
    kind: Literal["set", "update", "delete"]
    collection: str
    id: str
    data: dict[str, Any] = field(default_factory=dict)
    expected_version: str | None = None

    @classmethod
    def set(cls, collection: str, id: str, data: dict[str, Any], expected_version: str | None = None) -> "WriteOp":
        return cls("set", collection, id, data, expected_version)

    @classmethod
    def update(cls, collection: str, id: str, data: dict[str, Any], expected_version: str | None = None) -> "WriteOp":
        return cls("update", collection, id, data, expected_version)

    @classmethod
    def delete(cls, collection: str, id: str, expected_version: str | None = None) -> "WriteOp":
        return cls("delete", collection, id, {}, expected_version)


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class DocumentStore(ABC):
    """Abstract document store handle.

    Implementations are passed explicitly to every component that reads or
    writes; there is no module-level store.
    """

    # Short backend name, reported by the health endpoint.
    backend: str = ""

    @abstractmethod
    async def get(self, collection: str, id: str) -> StoredDocument | None:
        """Point lookup. Returns ``None`` when the document does not exist."""
        ...

    @abstractmethod
    async def get_all(self, collection: str, ids: list[str]) -> list[StoredDocument]:
        """Batched point lookups.

        Missing ids are skipped; the result follows the order of ``ids``.
        """
        ...

    @abstractmethod
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
        """Filtered, sorted read.

        Parameters
        ----------
        equals:
            Field equality filters. A ``None`` value matches documents where
            the field is missing or null.
        membership:
            At most one "any of" filter.
        order_by:
            Compound sort order. ``id`` refers to the document id.
        limit:
            Maximum number of documents; ``None`` means the store's own cap.
        resume_after:
            Sort-key values of the last document already seen, one per
            ``order_by`` entry. Results start strictly after it.
        """
        ...

    @abstractmethod
    async def batch_write(self, ops: list[WriteOp]) -> None:
        """Apply ``ops`` all-or-nothing.

        Raises :class:`VersionConflictError` if any op's expected version does
        not match, in which case nothing is applied.
        """
        ...
