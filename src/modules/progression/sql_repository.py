"""
SQLAlchemy-backed progression repositories.

Purpose
-------
Implement ``ProgressionRepository`` and ``OutcomeLogRepository`` on top of
an injected, initialised ``DatabaseService``.

Design Notes
------------
Compare-and-swap on ``user_progression.version``:

- ``expected_version == 0``: INSERT a new row with version 1. The unique
  constraint on ``user_id`` turns a racing insert into a conflict.
- otherwise: ``UPDATE ... WHERE user_id = :id AND version = :expected``.
  Zero affected rows means another writer got there first.

The denormalised ``level`` column is recomputed from ``total_xp`` on every
write and never read back.

Every call runs in its own transaction; database failures surface as
``DatabaseError`` except constraint races, which become
``PersistenceConflictError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.core.exceptions import DatabaseError
from src.core.logging.logger import get_logger
from src.database.models.enums import TechniqueCategory
from src.database.models.progression import TechniqueOutcomeModel, UserProgressionModel
from src.domain.models.coaching import TechniqueOutcomeRecord
from src.domain.models.progression import UserProgressionRecord
from src.modules.progression.level_logic import level_for_xp
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.constants import OUTCOME_WINDOW_SIZE
from src.modules.shared.exceptions import PersistenceConflictError

if TYPE_CHECKING:
    from src.core.database.service import DatabaseService


def _to_record(row: UserProgressionModel) -> UserProgressionRecord:
    return UserProgressionRecord(
        user_id=row.user_id,
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        streak_freeze_tokens=row.streak_freeze_tokens,
        last_practice_date=row.last_practice_date,
        total_xp=row.total_xp,
        total_practice_seconds=row.total_practice_seconds,
        total_exercises_completed=row.total_exercises_completed,
        achievements=tuple(row.achievements or ()),
        current_day=row.current_day,
        version=row.version,
    )


def _to_outcome(row: TechniqueOutcomeModel) -> TechniqueOutcomeRecord:
    return TechniqueOutcomeRecord(
        category=row.category,
        confidence_delta=row.confidence_delta,
        self_rated_fluency=row.self_rated_fluency,
        created_at=row.created_at,
        technique_id=row.technique_id,
        duration_seconds=row.duration_seconds,
    )


class SqlProgressionRepository(BaseRepository[UserProgressionModel]):
    """``ProgressionRepository`` over the ``user_progression`` table."""

    def __init__(self, database: DatabaseService) -> None:
        super().__init__(
            database,
            UserProgressionModel,
            get_logger(f"{__name__}.SqlProgressionRepository"),
        )

    async def get(self, user_id: str) -> Optional[UserProgressionRecord]:
        try:
            async with self._db.get_session() as session:
                row = await self.find_one_where(
                    session, UserProgressionModel.user_id == user_id
                )
                return _to_record(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise DatabaseError("progression.get", exc) from exc

    async def upsert(
        self, record: UserProgressionRecord, expected_version: int
    ) -> UserProgressionRecord:
        """
        Write ``record`` if the stored version still equals ``expected_version``.

        Returns:
            The record as stored, with ``version == expected_version + 1``

        Raises:
            PersistenceConflictError: Stored version differs
            DatabaseError: Any other database failure
        """
        new_version = expected_version + 1
        values = {
            "current_streak": record.current_streak,
            "longest_streak": record.longest_streak,
            "streak_freeze_tokens": record.streak_freeze_tokens,
            "last_practice_date": record.last_practice_date,
            "total_xp": record.total_xp,
            "level": level_for_xp(record.total_xp).level,
            "total_practice_seconds": record.total_practice_seconds,
            "total_exercises_completed": record.total_exercises_completed,
            "achievements": list(record.achievements),
            "current_day": record.current_day,
            "version": new_version,
        }

        try:
            async with self._db.get_transaction() as session:
                if expected_version == 0:
                    await self.insert(
                        session, UserProgressionModel(user_id=record.user_id, **values)
                    )
                else:
                    updated = await self.update_where(
                        session,
                        values,
                        UserProgressionModel.user_id == record.user_id,
                        UserProgressionModel.version == expected_version,
                    )
                    if updated == 0:
                        actual = await self.scalar_where(
                            session,
                            UserProgressionModel.version,
                            UserProgressionModel.user_id == record.user_id,
                        )
                        raise PersistenceConflictError(
                            record.user_id, expected_version, actual
                        )
        except IntegrityError as exc:
            raise PersistenceConflictError(record.user_id, expected_version) from exc
        except SQLAlchemyError as exc:
            raise DatabaseError("progression.upsert", exc) from exc

        self.log.debug(
            "Progression record written",
            extra={"user_id": record.user_id, "version": new_version},
        )
        return record.with_version(new_version)


class SqlOutcomeLogRepository(BaseRepository[TechniqueOutcomeModel]):
    """``OutcomeLogRepository`` over the ``technique_outcomes`` table."""

    def __init__(self, database: DatabaseService) -> None:
        super().__init__(
            database,
            TechniqueOutcomeModel,
            get_logger(f"{__name__}.SqlOutcomeLogRepository"),
        )

    async def append_outcome(self, user_id: str, record: TechniqueOutcomeRecord) -> None:
        try:
            async with self._db.get_transaction() as session:
                self.add(
                    session,
                    TechniqueOutcomeModel(
                        user_id=user_id,
                        category=record.category,
                        technique_id=record.technique_id,
                        confidence_delta=record.confidence_delta,
                        self_rated_fluency=record.self_rated_fluency,
                        duration_seconds=record.duration_seconds,
                        created_at=record.created_at,
                    ),
                )
        except SQLAlchemyError as exc:
            raise DatabaseError("outcomes.append", exc) from exc

    async def latest(
        self,
        user_id: str,
        category: Optional[Union[TechniqueCategory, str]] = None,
        limit: int = OUTCOME_WINDOW_SIZE,
    ) -> List[TechniqueOutcomeRecord]:
        """Newest-first outcomes; ties on ``created_at`` fall back to insert order."""
        conditions = [TechniqueOutcomeModel.user_id == user_id]
        if category is not None:
            conditions.append(TechniqueOutcomeModel.category == TechniqueCategory(category))

        try:
            async with self._db.get_session() as session:
                rows = await self.find_many_where(
                    session,
                    *conditions,
                    order_by=[
                        TechniqueOutcomeModel.created_at.desc(),
                        TechniqueOutcomeModel.id.desc(),
                    ],
                    limit=max(limit, 0),
                )
        except SQLAlchemyError as exc:
            raise DatabaseError("outcomes.latest", exc) from exc

        return [_to_outcome(row) for row in rows]
