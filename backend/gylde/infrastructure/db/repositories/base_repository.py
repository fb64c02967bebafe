"""
Base Repository for Gylde

Generic async repository over one SQLModel table. Concrete repositories
add the queries their service needs. Repositories flush but never commit;
the service that owns the unit of work decides when to commit.
"""

from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


# Type variable for generic repository
ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic async repository with CRUD operations.

    Args:
        model: The SQLModel class to operate on
        session: Async database session
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current session."""
        return self._session

    async def get_by_id(self, id: Any, for_update: bool = False) -> Optional[ModelType]:
        """
        Get a single record by its primary key.

        Args:
            id: Primary key value, or a dict of column -> value for composite keys
            for_update: Lock the row until the transaction ends

        Returns:
            Model instance or None if not found
        """
        return await self._session.get(self._model, id, with_for_update=for_update or None)

    async def exists(self, id: Any) -> bool:
        """
        Check if a record exists.

        Args:
            id: Primary key value

        Returns:
            True if exists, False otherwise
        """
        return await self.get_by_id(id) is not None

    async def add(self, db_obj: ModelType) -> ModelType:
        """
        Stage a new or modified record.

        Args:
            db_obj: Model instance

        Returns:
            The same instance, flushed
        """
        self._session.add(db_obj)
        await self._session.flush()
        return db_obj

    async def delete(self, db_obj: ModelType) -> None:
        """
        Delete a loaded record.

        Args:
            db_obj: Model instance
        """
        await self._session.delete(db_obj)
        await self._session.flush()

    async def list_where(self, *criteria, order_by=None, limit: int = 500) -> List[ModelType]:
        """
        List records matching the given criteria.

        Args:
            criteria: SQLAlchemy filter expressions
            order_by: Optional ordering expression
            limit: Maximum records to return

        Returns:
            List of model instances
        """
        stmt = select(self._model).where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        result = await self._session.execute(stmt.limit(limit))
        return list(result.scalars().all())

    async def count_where(self, *criteria) -> int:
        """
        Count records matching the given criteria.

        Returns:
            Number of matching records
        """
        stmt = select(func.count()).select_from(self._model).where(*criteria)
        result = await self._session.execute(stmt)
        return result.scalar_one()
