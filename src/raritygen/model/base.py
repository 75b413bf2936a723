"""Shared pydantic configuration for stored documents."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Document(BaseModel):
    """Base for documents read from and written back to a store.

    Fields are snake_case in Python and camelCase on the wire. Unknown keys
    are kept so a write-back never drops fields this package doesn't model.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize with wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)
