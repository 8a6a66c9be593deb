"""
Base Repository Pattern

Purpose
-------
Generic SQLAlchemy 2.0 helpers shared by the SQL adapters of the
progression and outcome-log repositories.

Design Notes
------------
- Every helper takes the caller's ``AsyncSession``; opening sessions and
  transactions stays with the subclass, through the injected
  ``DatabaseService``
- ``update_where`` returns the affected row count so compare-and-swap
  writers can detect a lost race
- Every call emits one structured debug record

Usage
-----
    class SqlOutcomeLogRepository(BaseRepository[TechniqueOutcomeModel]):
        async def recent(self, session, user_id):
            return await self.find_many_where(
                session,
                TechniqueOutcomeModel.user_id == user_id,
                order_by=[TechniqueOutcomeModel.created_at.desc()],
                limit=30,
            )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import select, update

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.database.service import DatabaseService

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Generic SQL repository over one mapped model.

    Args:
        database: Initialised DatabaseService providing sessions
        model_class: The mapped model class
        logger: Structured logger instance
    """

    def __init__(
        self, database: DatabaseService, model_class: Type[T], logger: Logger
    ) -> None:
        self._db = database
        self.model_class = model_class
        self.log = logger

    @property
    def model_name(self) -> str:
        return self.model_class.__name__

    async def find_one_where(
        self, session: AsyncSession, *conditions: ColumnElement[bool]
    ) -> Optional[T]:
        """Single row matching all conditions, or None."""
        result = await session.execute(select(self.model_class).where(*conditions))
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.find_one_where: {self.model_name}",
            extra={"model": self.model_name, "found": instance is not None},
        )
        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
    ) -> List[T]:
        """
        Rows matching all conditions.

        Args:
            session: Open session
            *conditions: Filter expressions
            order_by: Ordering clauses, applied in order
            limit: Maximum number of rows
        """
        stmt = select(self.model_class).where(*conditions)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)

        instances = list((await session.scalars(stmt)).all())

        self.log.debug(
            f"Repository.find_many_where: {self.model_name}",
            extra={"model": self.model_name, "found_count": len(instances), "limit": limit},
        )
        return instances

    async def scalar_where(
        self, session: AsyncSession, column: Any, *conditions: ColumnElement[bool]
    ) -> Any:
        """One column of the row matching the conditions, None when absent."""
        return await session.scalar(select(column).where(*conditions))

    async def update_where(
        self,
        session: AsyncSession,
        values: Dict[str, Any],
        *conditions: ColumnElement[bool],
    ) -> int:
        """
        UPDATE the rows matching all conditions.

        Returns:
            Number of rows changed; 0 when no row matched
        """
        result = await session.execute(
            update(self.model_class).where(*conditions).values(**values)
        )
        self.log.debug(
            f"Repository.update_where: {self.model_name}",
            extra={"model": self.model_name, "rowcount": result.rowcount},
        )
        return result.rowcount

    async def insert(self, session: AsyncSession, instance: T) -> T:
        """Add and flush so constraint violations surface inside the caller's try."""
        session.add(instance)
        await session.flush()
        self.log.debug(
            f"Repository.insert: {self.model_name}", extra={"model": self.model_name}
        )
        return instance

    def add(self, session: AsyncSession, instance: T) -> T:
        """Stage an instance; written on commit."""
        session.add(instance)
        self.log.debug(f"Repository.add: {self.model_name}", extra={"model": self.model_name})
        return instance
