"""Repository classes for CRUD operations on ORM models."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from libs.core.models import utc_now

from . import models


class NoteRepo:
    """CRUD operations for :class:`models.Note`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        user_id: str,
        title: str,
        content: str = "",
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> models.Note:
        now = utc_now()
        note = models.Note(
            user_id=user_id,
            title=title,
            content=content,
            attachments=attachments or [],
            created_at=now,
            updated_at=now,
        )
        self.session.add(note)
        await self.session.flush()
        return note

    async def get(self, note_id: str) -> Optional[models.Note]:
        return await self.session.get(models.Note, note_id)

    async def list_for_user(self, user_id: str) -> List[models.Note]:
        stmt = (
            select(models.Note)
            .where(models.Note.user_id == user_id)
            .order_by(models.Note.updated_at.desc(), models.Note.id.desc())
        )
        res = await self.session.execute(stmt)
        return list(res.scalars().all())

    async def delete(self, note: models.Note) -> None:
        await self.session.delete(note)

    async def update(self, note: models.Note, **fields) -> models.Note:
        for key, value in fields.items():
            setattr(note, key, value)
        await self.session.flush()
        return note


__all__ = ["NoteRepo"]
