"""Database utilities for NeoNote."""

from . import models
from .database import get_session, init_db
from .repositories import NoteRepo
from .backend import SqlNotesBackend

__all__ = ["models", "get_session", "init_db", "NoteRepo", "SqlNotesBackend"]
