"""Base repository with common queries."""

import uuid
from typing import Generic, TypeVar, Type

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with id lookups, listing and inserts.

    Repositories never commit. They flush so that generated values and
    constraint violations show up inside the caller's transaction.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """Initialize repository with model and session."""
        self.model = model
        self.session = session

    async def get_by_id(self, id: uuid.UUID) -> ModelType | None:
        """Get entity by ID."""
        stmt = select(self.model).where(self.model.id == id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list(
        self,
        skip: int = 0,
        limit: int = 100,
        **filters
    ) -> list[ModelType]:
        """List entities with optional equality filters."""
        stmt = select(self.model)

        for key, value in filters.items():
            if hasattr(self.model, key):
                stmt = stmt.where(getattr(self.model, key) == value)

        stmt = stmt.offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, **filters) -> int:
        """Count entities with optional equality filters."""
        stmt = select(func.count()).select_from(self.model)
        for key, value in filters.items():
            if hasattr(self.model, key):
                stmt = stmt.where(getattr(self.model, key) == value)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def create(self, **data) -> ModelType:
        """Add a new entity and flush it."""
        instance = self.model(**data)
        self.session.add(instance)
        await self.session.flush()
        return instance
