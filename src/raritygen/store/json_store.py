"""File-backed store for collections and composites.

Documents are JSON files laid out like the document hierarchy they come from:

    <root>/projects/<project>/collections/<collection>.json
    <root>/projects/<project>/collections/<collection>/groups/<group>/composites/<id>.json

One file per composite keeps updates independent of each other, so
concurrent writes to different composites never touch the same file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from raritygen.model import Collection, Composite
from raritygen.store.base import (
    CollectionNotFoundError,
    CompositeNotFoundError,
    CompositeStoreError,
    StoreError,
)

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Implements CollectionLookup and CompositeStore over a directory tree.

    Example:
        >>> store = JsonFileStore("data")
        >>> store.save_collection(Collection(id="apes", name="Apes"), "proj")
        >>> store.add(composite, "proj", "apes", "batch-1")
        >>> store.list_all("proj", "apes", "batch-1")
    """

    DEFAULT_ROOT = "data"

    def __init__(self, root: str | Path | None = None) -> None:
        """Initialize the store.

        Args:
            root: Root directory. Defaults to DEFAULT_ROOT under the current
                working directory.
        """
        self._root = Path(root if root is not None else self.DEFAULT_ROOT)

    @property
    def root(self) -> Path:
        return self._root

    @staticmethod
    def _validate_id(kind: str, value: str) -> str:
        """Validate an id for use as a path component.

        Raises:
            StoreError: If the id is empty or contains unsafe characters.
        """
        if not value or not value.strip():
            raise StoreError(f"{kind} ID cannot be empty")

        sanitized = value.strip()
        if not all(c.isalnum() or c in ("_", "-") for c in sanitized):
            raise StoreError(
                f"{kind} ID '{value}' contains invalid characters. "
                "Only alphanumeric characters, underscores, and hyphens are allowed."
            )
        return sanitized

    def _collection_path(self, project_id: str, collection_id: str) -> Path:
        project = self._validate_id("Project", project_id)
        collection = self._validate_id("Collection", collection_id)
        return self._root / "projects" / project / "collections" / f"{collection}.json"

    def _composites_dir(self, project_id: str, collection_id: str, group_id: str) -> Path:
        project = self._validate_id("Project", project_id)
        collection = self._validate_id("Collection", collection_id)
        group = self._validate_id("Group", group_id)
        return (
            self._root
            / "projects"
            / project
            / "collections"
            / collection
            / "groups"
            / group
            / "composites"
        )

    def _composite_path(
        self, composite_id: str, project_id: str, collection_id: str, group_id: str
    ) -> Path:
        directory = self._composites_dir(project_id, collection_id, group_id)
        return directory / f"{self._validate_id('Composite', composite_id)}.json"

    @staticmethod
    def _read(path: Path) -> Any:
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    @staticmethod
    def _write(path: Path, document: dict[str, Any]) -> None:
        """Write ``document`` to ``path`` via a temporary file and rename."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # CollectionLookup

    def get(self, collection_id: str, project_id: str) -> Collection:
        """Load a collection document.

        Raises:
            CollectionNotFoundError: If no document exists for the id.
            StoreError: If the document cannot be read or parsed.
        """
        path = self._collection_path(project_id, collection_id)
        if not path.exists():
            raise CollectionNotFoundError(collection_id, project_id)
        try:
            return Collection.model_validate(self._read(path))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StoreError(f"Failed to load collection '{collection_id}': {e}") from e

    def save_collection(self, collection: Collection, project_id: str) -> Collection:
        """Create or overwrite a collection document."""
        path = self._collection_path(project_id, collection.id)
        try:
            self._write(path, collection.to_document())
        except OSError as e:
            raise StoreError(f"Failed to save collection '{collection.id}': {e}") from e
        logger.info("Saved collection %s in project %s", collection.id, project_id)
        return collection

    # CompositeStore

    def list_all(self, project_id: str, collection_id: str, group_id: str) -> list[Composite]:
        """Load every composite in a group, ordered by id.

        A group with no composites directory is empty.

        Raises:
            StoreError: If any composite document cannot be read or parsed.
        """
        directory = self._composites_dir(project_id, collection_id, group_id)
        if not directory.is_dir():
            return []

        composites = []
        for path in sorted(directory.glob("*.json")):
            try:
                composites.append(Composite.model_validate(self._read(path)))
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                raise StoreError(f"Failed to load composite from {path.name}: {e}") from e

        logger.debug(
            "Loaded %d composites for %s/%s/%s",
            len(composites),
            project_id,
            collection_id,
            group_id,
        )
        return composites

    def add(
        self, composite: Composite, project_id: str, collection_id: str, group_id: str
    ) -> Composite:
        """Create or overwrite a composite document."""
        path = self._composite_path(composite.id, project_id, collection_id, group_id)
        try:
            self._write(path, composite.to_document())
        except OSError as e:
            raise CompositeStoreError(f"Failed to save composite '{composite.id}': {e}") from e
        return composite

    def update(
        self, composite: Composite, project_id: str, collection_id: str, group_id: str
    ) -> Composite:
        """Overwrite an existing composite document.

        Raises:
            CompositeNotFoundError: If the id is invalid or no such composite
                is stored.
            CompositeStoreError: If the document cannot be written.
        """
        try:
            path = self._composite_path(composite.id, project_id, collection_id, group_id)
        except StoreError as e:
            raise CompositeNotFoundError(str(e)) from e
        if not path.exists():
            raise CompositeNotFoundError(f"Composite '{composite.id}' not found")
        try:
            self._write(path, composite.to_document())
        except OSError as e:
            raise CompositeStoreError(f"Failed to update composite '{composite.id}': {e}") from e
        return composite
