"""
Base Repository.

Base class for all repositories with common data access operations.
"""

from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.logging import get_logger
from modules.backend.models.base import Base

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common data access operations.

    Subclasses should set the model class:

        class NoteRepository(BaseRepository[Note]):
            model = Note

    Reads always refresh from the database so values written by
    conditional UPDATE statements are never shadowed by the identity map.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id_or_none(self, id: str) -> ModelType | None:
        """Get a single record by ID, returning None if not found."""
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def add(self, instance: ModelType) -> ModelType:
        """
        Insert a new record. Never merges into an existing row.

        Raises:
            sqlalchemy.exc.IntegrityError: If the primary key already exists
        """
        self.session.add(instance)
        await self.session.flush()
        return instance
