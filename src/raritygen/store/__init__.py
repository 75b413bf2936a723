"""Store contracts and the file-backed reference store."""

from raritygen.store.base import (
    CollectionLookup,
    CollectionNotFoundError,
    CompositeNotFoundError,
    CompositeStore,
    CompositeStoreError,
    StoreError,
)
from raritygen.store.json_store import JsonFileStore

__all__ = [
    "CollectionLookup",
    "CollectionNotFoundError",
    "CompositeNotFoundError",
    "CompositeStore",
    "CompositeStoreError",
    "JsonFileStore",
    "StoreError",
]
