"""Core library exposing domain models, settings, exceptions and types."""

from .settings import Settings, get_settings
from .exceptions import (
    DomainError,
    TransientRemoteError,
    NotFoundError,
    ValidationError,
    UnauthenticatedError,
    InvalidStateError,
    Error,
)
from .models import (
    Attachment,
    NoteFields,
    Note,
    NoteStats,
    CollectionStats,
    Notice,
    FileUpload,
    UploadFailure,
    UploadReport,
)
from .types import Result

__all__ = [
    "Settings",
    "get_settings",
    "DomainError",
    "TransientRemoteError",
    "NotFoundError",
    "ValidationError",
    "UnauthenticatedError",
    "InvalidStateError",
    "Error",
    "Attachment",
    "NoteFields",
    "Note",
    "NoteStats",
    "CollectionStats",
    "Notice",
    "FileUpload",
    "UploadFailure",
    "UploadReport",
    "Result",
]
