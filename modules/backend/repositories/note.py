"""
Note Repository.

Data access layer for notes. Lifecycle transitions are single
conditional UPDATE statements so concurrent requests settle in the
database, not in application memory. No business rules live here.
"""

from datetime import datetime

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.models.note import Note
from modules.backend.repositories.base import BaseRepository


class NoteRepository(BaseRepository[Note]):
    """
    Repository for Note model.

    Inherits lookups and insert from BaseRepository and adds the
    compare-and-set updates the lifecycle needs.
    """

    model = Note

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def soft_delete(self, note_id: str) -> bool:
        """
        Mark a note deleted if it is not already.

        Returns:
            True if this call performed the transition, False if the
            note was already deleted or does not exist
        """
        result = await self.session.execute(
            update(Note)
            .where(Note.id == note_id)
            .where(Note.is_deleted == False)  # noqa: E712
            .values(is_deleted=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def decrement_attempts(self, note_id: str) -> int | None:
        """
        Spend one verification attempt.

        The guard keeps the counter from going below zero under
        concurrent callers.

        Returns:
            The new attempts_remaining, or None when nothing was left
            to spend (or the note is deleted)
        """
        result = await self.session.execute(
            update(Note)
            .where(Note.id == note_id)
            .where(Note.attempts_remaining > 0)
            .where(Note.is_deleted == False)  # noqa: E712
            .values(attempts_remaining=Note.attempts_remaining - 1)
            .returning(Note.attempts_remaining)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def purge_expired(self, cutoff: datetime) -> int:
        """
        Hard-delete notes that expired before the cutoff.

        Args:
            cutoff: Naive UTC instant; rows with expires_at before it go

        Returns:
            Number of rows removed
        """
        result = await self.session.execute(
            delete(Note)
            .where(Note.expires_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
