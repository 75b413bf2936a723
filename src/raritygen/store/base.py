"""Collaborator contracts for reading and writing composites.

The ranking run depends only on these protocols; any document database can
sit behind them.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from raritygen.model import Collection, Composite


class StoreError(Exception):
    """Exception raised when a store operation fails."""

    pass


class CollectionNotFoundError(StoreError):
    """Exception raised when a collection does not exist."""

    def __init__(self, collection_id: str, project_id: str) -> None:
        super().__init__(f"Collection '{collection_id}' not found in project '{project_id}'")
        self.collection_id = collection_id
        self.project_id = project_id


class CompositeStoreError(StoreError):
    """Exception raised when a single composite cannot be persisted."""

    pass


class CompositeNotFoundError(CompositeStoreError):
    """Exception raised when the composite to update is not in the store.

    Retrying cannot help, so the run gives up on it at once.
    """

    pass


@runtime_checkable
class CollectionLookup(Protocol):
    """Reads collection documents by id."""

    def get(self, collection_id: str, project_id: str) -> Collection:
        """Return the collection.

        Raises:
            CollectionNotFoundError: If it does not exist.
        """
        ...


@runtime_checkable
class CompositeStore(Protocol):
    """Reads a population of composites and writes composites back one by one."""

    def list_all(self, project_id: str, collection_id: str, group_id: str) -> list[Composite]:
        """Return a point-in-time snapshot of every composite in the group."""
        ...

    def update(
        self, composite: Composite, project_id: str, collection_id: str, group_id: str
    ) -> Composite:
        """Persist one composite and return the stored version.

        Raises:
            CompositeNotFoundError: If the composite is not in the store.
            CompositeStoreError: If this composite could not be written.
        """
        ...
