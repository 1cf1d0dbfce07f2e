"""
TechDoc Document Record — the one metadata type for stored documents.

The record carries the document's current physical path (``full_path``).
That field is persisted in the index but stripped when the document is shown
to clients, see ``to_public()``.

Index file layout:
    {"<uuid>": {"id": ..., "name": ..., "folder": ..., "type": ...,
                "createdOn": ..., "lastSavedOn": ..., "deletedOn": ...,
                "size": ..., "fullPath": ...}, ...}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRecord(BaseModel):
    """
    Document metadata plus the location of its bytes.

    Live records point into the document tree; deleted records point into the
    trash folder under a ``@<timestamp>``-suffixed name.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID = Field(description="Opaque unique identifier, never reused")
    name: str = Field(description="File name without folder and extension")
    folder: str = Field(default="", description="Logical folder, '' for the root")
    type: str = Field(default="", description="Content type (file extension without dot)")
    created_on: datetime = Field(description="When the document was first saved")
    last_saved_on: datetime = Field(description="Last time the document was saved")
    deleted_on: Optional[datetime] = Field(
        default=None, description="When the document was sent to the trash"
    )
    size: int = Field(default=0, ge=0, description="Content size in characters")
    full_path: str = Field(description="Absolute path of the file holding the content")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_on is not None

    def to_public(self) -> Dict[str, Any]:
        """Client-facing view: no physical path, no unset deletion stamp."""
        return self.model_dump(
            mode="json", by_alias=True, exclude={"full_path"}, exclude_none=True
        )

    def to_index_entry(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
