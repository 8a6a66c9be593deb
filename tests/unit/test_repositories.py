"""
Unit tests for the in-memory repositories and the per-user lock registry.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from src.database.models.enums import TechniqueCategory
from src.domain.models.coaching import TechniqueOutcomeRecord
from src.domain.models.progression import UserProgressionRecord
from src.modules.progression.locks import UserLockRegistry
from src.modules.progression.repository import (
    InMemoryOutcomeLog,
    InMemoryProgressionRepository,
    OutcomeLogRepository,
    ProgressionRepository,
)
from src.modules.shared.exceptions import PersistenceConflictError

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestInMemoryProgressionRepository:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryProgressionRepository(), ProgressionRepository)

    async def test_missing_user_returns_none(self, progression_repository):
        assert await progression_repository.get("nobody") is None

    async def test_insert_with_version_zero(self, progression_repository):
        saved = await progression_repository.upsert(UserProgressionRecord.new("user-1"), 0)

        assert saved.version == 1
        assert await progression_repository.get("user-1") == saved

    async def test_update_increments_version(self, progression_repository):
        saved = await progression_repository.upsert(UserProgressionRecord.new("user-1"), 0)

        updated = await progression_repository.upsert(
            UserProgressionRecord(user_id="user-1", total_xp=10, version=saved.version), 1
        )

        assert updated.version == 2
        assert updated.total_xp == 10

    async def test_stale_version_conflicts(self, progression_repository):
        await progression_repository.upsert(UserProgressionRecord.new("user-1"), 0)

        with pytest.raises(PersistenceConflictError) as exc_info:
            await progression_repository.upsert(UserProgressionRecord.new("user-1"), 0)

        assert exc_info.value.expected_version == 0
        assert exc_info.value.actual_version == 1

    async def test_conflict_leaves_stored_record_untouched(self, progression_repository):
        await progression_repository.upsert(UserProgressionRecord(user_id="u", total_xp=5), 0)

        with pytest.raises(PersistenceConflictError):
            await progression_repository.upsert(UserProgressionRecord(user_id="u", total_xp=99), 7)

        assert (await progression_repository.get("u")).total_xp == 5


@pytest.mark.unit
class TestInMemoryOutcomeLog:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryOutcomeLog(), OutcomeLogRepository)

    async def test_latest_is_newest_first(self, outcome_log):
        older = TechniqueOutcomeRecord(
            category="fluency_shaping", created_at=NOW - timedelta(hours=1)
        )
        newer = TechniqueOutcomeRecord(category="fluency_shaping", created_at=NOW)
        await outcome_log.append_outcome("user-1", newer)
        await outcome_log.append_outcome("user-1", older)

        assert await outcome_log.latest("user-1") == [newer, older]

    async def test_ties_keep_latest_append_first(self, outcome_log):
        first = TechniqueOutcomeRecord(category="fluency_shaping", created_at=NOW, technique_id="a")
        second = TechniqueOutcomeRecord(category="fluency_shaping", created_at=NOW, technique_id="b")
        await outcome_log.append_outcome("user-1", first)
        await outcome_log.append_outcome("user-1", second)

        latest = await outcome_log.latest("user-1")

        assert [r.technique_id for r in latest] == ["b", "a"]

    async def test_category_filter_and_limit(self, outcome_log):
        for i in range(5):
            await outcome_log.append_outcome(
                "user-1",
                TechniqueOutcomeRecord(
                    category="stuttering_modification",
                    created_at=NOW + timedelta(minutes=i),
                ),
            )
            await outcome_log.append_outcome(
                "user-1",
                TechniqueOutcomeRecord(
                    category="fluency_shaping", created_at=NOW + timedelta(minutes=i)
                ),
            )

        latest = await outcome_log.latest(
            "user-1", category=TechniqueCategory.STUTTERING_MODIFICATION, limit=3
        )

        assert len(latest) == 3
        assert all(r.category is TechniqueCategory.STUTTERING_MODIFICATION for r in latest)
        assert outcome_log.count("user-1") == 10

    async def test_unknown_user_has_empty_log(self, outcome_log):
        assert await outcome_log.latest("nobody") == []


@pytest.mark.unit
class TestUserLockRegistry:
    async def test_registry_empty_after_hold_exits(self):
        locks = UserLockRegistry()

        async with locks.hold("a", "b"):
            assert len(locks) == 2
            assert locks.is_held("a") and locks.is_held("b")

        assert len(locks) == 0
        assert not locks.is_held("a")

    async def test_many_users_leave_nothing_behind(self):
        locks = UserLockRegistry()

        for index in range(100):
            async with locks.hold(f"user-{index}"):
                pass

        assert len(locks) == 0

    async def test_waiting_holder_keeps_lock_alive(self):
        locks = UserLockRegistry()
        release = asyncio.Event()
        entered = []

        async def first():
            async with locks.hold("user-1"):
                entered.append("first")
                await release.wait()

        async def second():
            async with locks.hold("user-1"):
                entered.append("second")

        tasks = [asyncio.create_task(first()), asyncio.create_task(second())]
        await asyncio.sleep(0)
        assert entered == ["first"]
        assert len(locks) == 1

        release.set()
        await asyncio.gather(*tasks)

        assert entered == ["first", "second"]
        assert len(locks) == 0

    async def test_cancelled_waiter_is_forgotten(self):
        locks = UserLockRegistry()

        async with locks.hold("user-1"):
            waiter = asyncio.create_task(locks.hold("user-1").__aenter__())
            await asyncio.sleep(0)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

        assert len(locks) == 0

    async def test_hold_serialises_same_user(self):
        locks = UserLockRegistry()
        order = []

        async def worker(name):
            async with locks.hold("user-1"):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]

    async def test_duplicate_ids_locked_once(self):
        locks = UserLockRegistry()

        async with locks.hold("user-1", "user-1"):
            assert locks.is_held("user-1")
            assert len(locks) == 1

        assert not locks.is_held("user-1")

    async def test_locks_released_on_error(self):
        locks = UserLockRegistry()

        with pytest.raises(RuntimeError):
            async with locks.hold("a", "b"):
                raise RuntimeError("boom")

        assert not locks.is_held("a")
        assert not locks.is_held("b")
        assert len(locks) == 0
