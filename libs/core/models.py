"""Pydantic models representing core domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError

DEFAULT_MIME_TYPE = "application/octet-stream"


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class Attachment(BaseModel):
    """A file stored in blob storage and referenced by a note.

    The storage ``path`` is the identity. The remote record keeps the
    attachment as ``{"id", "name", "url", "type", "size"}``; the aliases map
    that shape onto the fields below.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str = Field(..., alias="id", min_length=1)
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    mime_type: str = Field(default=DEFAULT_MIME_TYPE, alias="type")
    size_bytes: int = Field(..., alias="size", ge=0)

    @field_validator("mime_type", mode="before")
    @classmethod
    def _blank_mime_type(cls, value: Any) -> Any:
        # browsers report "" for unknown types
        return value or DEFAULT_MIME_TYPE

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Attachment":
        """Validate a raw attachment record, raising the domain error."""
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError(f"Malformed attachment record: {exc.errors()[0]['msg']}") from exc

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class NoteFields(BaseModel):
    """Editable part of a note, handed from a buffer to the store on save."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    content: str = ""
    attachments: Tuple[Attachment, ...] = ()

    @field_validator("title", "content", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Note(BaseModel):
    """A persisted note as acknowledged by the remote store."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    title: str = ""
    content: str = ""
    attachments: Tuple[Attachment, ...] = ()
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("title", "content", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def fields(self) -> NoteFields:
        return NoteFields(
            title=self.title, content=self.content, attachments=self.attachments
        )

    def with_fields(self, fields: NoteFields, updated_at: datetime) -> "Note":
        return self.model_copy(
            update={
                "title": fields.title,
                "content": fields.content,
                "attachments": tuple(fields.attachments),
                "updated_at": updated_at,
            }
        )


class NoteStats(BaseModel):
    """Derived metrics for a single piece of content."""

    words: int
    chars: int
    reading_minutes: int


class CollectionStats(BaseModel):
    """Totals over the whole note collection."""

    notes: int
    words: int
    chars: int


class Notice(BaseModel):
    """User-visible outcome of a workspace operation."""

    title: str
    description: str
    variant: str = "default"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


@dataclass(frozen=True)
class FileUpload:
    """A file picked by the user, waiting to be uploaded."""

    name: str
    data: bytes
    mime_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class UploadFailure:
    name: str
    reason: str


@dataclass
class UploadReport:
    """Settled outcome of one ``upload_many`` batch."""

    succeeded: List[Attachment] = field(default_factory=list)
    failed: List[UploadFailure] = field(default_factory=list)
    # set when the buffer the batch was meant for moved on before it settled
    discarded: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed


__all__ = [
    "Attachment",
    "NoteFields",
    "Note",
    "NoteStats",
    "CollectionStats",
    "Notice",
    "FileUpload",
    "UploadFailure",
    "UploadReport",
    "utc_now",
    "DEFAULT_MIME_TYPE",
]
