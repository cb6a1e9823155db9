"""Document store contract and its adapters."""

from .base import (
    MAX_MEMBERSHIP_VALUES,
    DocumentStore,
    MembershipFilter,
    SortKey,
    StoredDocument,
    StoreError,
    VersionConflictError,
    WriteOp,
)
from .memory import MemoryStore

__all__ = [
    "MAX_MEMBERSHIP_VALUES",
    "DocumentStore",
    "MembershipFilter",
    "MemoryStore",
    "SortKey",
    "StoredDocument",
    "StoreError",
    "VersionConflictError",
    "WriteOp",
]
