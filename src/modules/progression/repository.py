"""
Progression persistence interfaces and in-memory adapters.

Purpose
-------
Define the two storage seams the progression and coaching services depend
on, and ship dict-backed implementations used by default and in tests.

- ``ProgressionRepository``: one ``UserProgressionRecord`` per user, written
  with compare-and-swap on ``version``
- ``OutcomeLogRepository``: append-only technique outcome log, read newest
  first

Design Notes
------------
``upsert(record, expected_version)`` succeeds only when the stored version
equals ``expected_version`` (0 meaning "no row yet"). The returned record
carries ``expected_version + 1``. A mismatch raises
``PersistenceConflictError``; callers re-read and recompute.

The SQLAlchemy adapters live in ``sql_repository``.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Union, runtime_checkable

from src.core.logging.logger import get_logger
from src.database.models.enums import TechniqueCategory
from src.domain.models.coaching import TechniqueOutcomeRecord
from src.domain.models.progression import UserProgressionRecord
from src.modules.shared.constants import OUTCOME_WINDOW_SIZE
from src.modules.shared.exceptions import PersistenceConflictError

logger = get_logger(__name__)


# ============================================================================
# INTERFACES
# ============================================================================


@runtime_checkable
class ProgressionRepository(Protocol):
    """Storage for per-user progression records."""

    async def get(self, user_id: str) -> Optional[UserProgressionRecord]:
        ...

    async def upsert(
        self, record: UserProgressionRecord, expected_version: int
    ) -> UserProgressionRecord:
        ...


@runtime_checkable
class OutcomeLogRepository(Protocol):
    """Append-only technique outcome log."""

    async def append_outcome(self, user_id: str, record: TechniqueOutcomeRecord) -> None:
        ...

    async def latest(
        self,
        user_id: str,
        category: Optional[Union[TechniqueCategory, str]] = None,
        limit: int = OUTCOME_WINDOW_SIZE,
    ) -> List[TechniqueOutcomeRecord]:
        ...


# ============================================================================
# IN-MEMORY ADAPTERS
# ============================================================================


class InMemoryProgressionRepository:
    """
    Dict-backed ``ProgressionRepository``.

    Safe under a single event loop: each method runs without awaiting, so a
    compare-and-swap cannot interleave with another coroutine.
    """

    def __init__(self) -> None:
        self._records: Dict[str, UserProgressionRecord] = {}

    async def get(self, user_id: str) -> Optional[UserProgressionRecord]:
        return self._records.get(user_id)

    async def upsert(
        self, record: UserProgressionRecord, expected_version: int
    ) -> UserProgressionRecord:
        stored = self._records.get(record.user_id)
        actual_version = stored.version if stored is not None else 0

        if actual_version != expected_version:
            logger.debug(
                "Progression upsert rejected",
                extra={
                    "user_id": record.user_id,
                    "expected_version": expected_version,
                    "actual_version": actual_version,
                },
            )
            raise PersistenceConflictError(record.user_id, expected_version, actual_version)

        saved = record.with_version(expected_version + 1)
        self._records[record.user_id] = saved
        return saved

    def __len__(self) -> int:
        return len(self._records)


class InMemoryOutcomeLog:
    """Dict-backed ``OutcomeLogRepository``."""

    def __init__(self) -> None:
        self._outcomes: Dict[str, List[TechniqueOutcomeRecord]] = {}

    async def append_outcome(self, user_id: str, record: TechniqueOutcomeRecord) -> None:
        self._outcomes.setdefault(user_id, []).append(record)

    async def latest(
        self,
        user_id: str,
        category: Optional[Union[TechniqueCategory, str]] = None,
        limit: int = OUTCOME_WINDOW_SIZE,
    ) -> List[TechniqueOutcomeRecord]:
        """
        Newest-first outcomes for a user.

        Ties on ``created_at`` keep the most recently appended record first.
        """
        records = list(reversed(self._outcomes.get(user_id, [])))
        records.sort(key=lambda r: r.created_at, reverse=True)
        if category is not None:
            wanted = TechniqueCategory(category)
            records = [r for r in records if r.category == wanted]
        return records[: max(limit, 0)]

    def count(self, user_id: str) -> int:
        return len(self._outcomes.get(user_id, []))
