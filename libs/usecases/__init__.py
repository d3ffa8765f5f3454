"""Application use cases built on the note engine."""

from .workspace import Dashboard, NotesWorkspace

__all__ = ["Dashboard", "NotesWorkspace"]
