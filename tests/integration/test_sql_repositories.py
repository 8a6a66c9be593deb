"""
Integration Tests for the SQL Progression Repositories
======================================================

Purpose
-------
Exercise the compare-and-swap writes and outcome reads against a real
PostgreSQL instance started through testcontainers.

Test Coverage
-------------
- Insert with version 0, update with the stored version
- Stale writes and racing inserts rejected as conflicts
- Newest-first outcome reads with category filter and limit
- ProgressionService end to end on the SQL backend

Requires Docker; the whole module is skipped when no daemon is reachable.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from src.core.event.bus import EventBus
from src.core.services.container import ServiceContainer
from src.database.models.enums import TechniqueCategory
from src.domain.models.coaching import TechniqueOutcomeRecord
from src.domain.models.progression import UserProgressionRecord
from src.modules.progression.sql_repository import (
    SqlOutcomeLogRepository,
    SqlProgressionRepository,
)
from src.modules.shared.exceptions import PersistenceConflictError

pytestmark = [pytest.mark.integration, pytest.mark.database]

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestSqlProgressionRepository:
    async def test_missing_user_returns_none(self, database):
        repository = SqlProgressionRepository(database)

        assert await repository.get("nobody") is None

    async def test_insert_then_update(self, database):
        # Arrange
        repository = SqlProgressionRepository(database)
        inserted = await repository.upsert(UserProgressionRecord.new("user-1"), 0)

        # Act
        updated = await repository.upsert(
            UserProgressionRecord(
                user_id="user-1",
                current_streak=2,
                longest_streak=2,
                last_practice_date=date(2024, 5, 2),
                total_xp=60,
                total_practice_seconds=300,
                total_exercises_completed=2,
                achievements=("first_steps", "streak_3"),
                current_day=3,
            ),
            inserted.version,
        )

        # Assert
        stored = await repository.get("user-1")
        assert inserted.version == 1
        assert updated.version == 2
        assert stored == updated
        assert stored.last_practice_date == date(2024, 5, 2)
        assert stored.achievements == ("first_steps", "streak_3")
        assert stored.current_day == 3

    async def test_stale_update_conflicts(self, database):
        repository = SqlProgressionRepository(database)
        await repository.upsert(UserProgressionRecord.new("user-1"), 0)
        await repository.upsert(UserProgressionRecord(user_id="user-1", total_xp=10), 1)

        with pytest.raises(PersistenceConflictError) as exc_info:
            await repository.upsert(UserProgressionRecord(user_id="user-1", total_xp=99), 1)

        assert exc_info.value.actual_version == 2
        assert (await repository.get("user-1")).total_xp == 10

    async def test_racing_insert_conflicts(self, database):
        repository = SqlProgressionRepository(database)
        await repository.upsert(UserProgressionRecord.new("user-1"), 0)

        with pytest.raises(PersistenceConflictError):
            await repository.upsert(UserProgressionRecord.new("user-1"), 0)


class TestSqlOutcomeLogRepository:
    async def test_latest_newest_first_with_filter(self, database):
        outcomes = SqlOutcomeLogRepository(database)
        for i in range(4):
            await outcomes.append_outcome(
                "user-1",
                TechniqueOutcomeRecord(
                    category=TechniqueCategory.FLUENCY_SHAPING,
                    confidence_delta=float(i),
                    created_at=NOW + timedelta(minutes=i),
                    technique_id="easy_onset",
                ),
            )
        await outcomes.append_outcome(
            "user-1",
            TechniqueOutcomeRecord(
                category=TechniqueCategory.STUTTERING_MODIFICATION,
                created_at=NOW + timedelta(hours=1),
            ),
        )

        latest = await outcomes.latest("user-1", category="fluency_shaping", limit=2)

        assert [r.confidence_delta for r in latest] == [3.0, 2.0]
        assert all(r.category is TechniqueCategory.FLUENCY_SHAPING for r in latest)
        assert len(await outcomes.latest("user-1")) == 5
        assert await outcomes.latest("user-2") == []


class TestSqlBackedServices:
    async def test_session_recording_end_to_end(self, database, test_config, mock_logger):
        # Arrange
        container = ServiceContainer(test_config, EventBus(), mock_logger, database=database)
        await container.initialize()
        progression = container.progression

        # Act
        await progression.record_session_completion("user-1", date(2024, 5, 1), 30)
        await progression.record_session_completion("user-1", date(2024, 5, 2), 30)
        result = await progression.record_session_completion(
            "user-1",
            date(2024, 5, 3),
            30,
            outcome={"category": "fluency_shaping", "confidence_delta": 1.5},
            practice_seconds=600,
        )

        # Assert
        snapshot = await progression.get_progression("user-1")
        assert result.new_streak == 3
        assert snapshot.record.total_xp == 90
        assert snapshot.level == 2
        assert snapshot.record.version == 3
        assert snapshot.record.total_practice_seconds == 600
        summary = await container.coaching.get_outcome_summary("user-1")
        assert summary.fluency_shaping.session_count == 1
        assert container.backend == "sql"
        assert (await container.health_check())["database_healthy"] is True
