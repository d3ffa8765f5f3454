"""Interfaces of the collaborators the note engine talks to."""

from .base import AuthSession, BlobStorage, NotesBackend, display_name

__all__ = ["AuthSession", "BlobStorage", "NotesBackend", "display_name"]
