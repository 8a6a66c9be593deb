"""
Unit tests for ProgressionService.

Tests session recording, XP awards, freeze tokens, compare-and-swap retries
and per-user serialisation, against the in-memory repositories.
"""

import asyncio
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from src.core.event.bus import EventBus
from src.domain.models.base import DomainValidationError
from src.domain.models.coaching import TechniqueOutcomeRecord
from src.domain.models.progression import UserProgressionRecord
from src.modules.progression.achievement_logic import ACHIEVEMENTS
from src.modules.progression.repository import (
    InMemoryOutcomeLog,
    InMemoryProgressionRepository,
)
from src.modules.progression.service import ProgressionService
from src.modules.shared.exceptions import (
    InvalidOperationError,
    PersistenceConflictError,
    ValidationError,
)
from tests.conftest import published_events

DAY = date(2024, 5, 10)


class RacingProgressionRepository(InMemoryProgressionRepository):
    """Lets a competing writer land just before each of the next ``races`` upserts."""

    def __init__(self, races: int, competing_xp: int = 100) -> None:
        super().__init__()
        self.races = races
        self.competing_xp = competing_xp
        self.upsert_calls = 0

    async def upsert(self, record, expected_version):
        self.upsert_calls += 1
        if self.races > 0:
            self.races -= 1
            stored = self._records.get(record.user_id) or UserProgressionRecord.new(
                record.user_id
            )
            await super().upsert(
                replace(stored, total_xp=stored.total_xp + self.competing_xp),
                stored.version,
            )
        return await super().upsert(record, expected_version)


class RejectingProgressionRepository(InMemoryProgressionRepository):
    """Every write for ``user_id`` loses the compare-and-swap."""

    def __init__(self, user_id: str) -> None:
        super().__init__()
        self.user_id = user_id

    async def upsert(self, record, expected_version):
        if record.user_id == self.user_id:
            raise PersistenceConflictError(record.user_id, expected_version, expected_version + 1)
        return await super().upsert(record, expected_version)


def _service(repository, outcome_log, config, event_bus, logger):
    return ProgressionService(
        progression_repository=repository,
        outcome_log=outcome_log,
        config=config,
        event_bus=event_bus,
        logger=logger,
    )


# ============================================================================
# READS
# ============================================================================


@pytest.mark.unit
class TestGetProgression:
    async def test_missing_record_is_created_with_defaults(
        self, progression_service, progression_repository
    ):
        snapshot = await progression_service.get_progression("user-1")

        assert snapshot.record.current_streak == 0
        assert snapshot.record.version == 1
        assert snapshot.level == 1
        assert snapshot.level_title == "Beginner"
        assert len(progression_repository) == 1

    async def test_existing_record_is_returned(self, progression_service):
        await progression_service.award_xp("user-1", 112)

        snapshot = await progression_service.get_progression("user-1")

        assert snapshot.record.total_xp == 112
        assert snapshot.level == 2
        assert snapshot.level_progress_percent == 50

    async def test_user_id_is_required(self, progression_service):
        with pytest.raises(ValidationError) as exc_info:
            await progression_service.get_progression("   ")

        assert exc_info.value.field == "user_id"

    def test_level_info_is_stateless(self):
        info = ProgressionService.get_level_info(49)

        assert info.level == 1
        assert info.progress_percent == 98


# ============================================================================
# SESSIONS
# ============================================================================


@pytest.mark.unit
class TestRecordSessionCompletion:
    async def test_first_second_and_late_sessions(self, progression_service, outcome_log):
        outcome = {"category": "fluency_shaping", "confidence_delta": 1.0}

        first = await progression_service.record_session_completion(
            "user-1", DAY, 20, outcome=outcome
        )
        second = await progression_service.record_session_completion(
            "user-1", DAY + timedelta(days=1), 20
        )
        await progression_service.grant_freeze_tokens("user-1", 3)
        third = await progression_service.record_session_completion(
            "user-1", DAY + timedelta(days=6), 20
        )

        assert (first.new_streak, first.freeze_consumed) == (1, False)
        assert outcome_log.count("user-1") == 1
        assert second.new_streak == 2
        assert third.new_streak == 1
        assert third.freeze_consumed is False
        assert third.longest_streak == 2
        assert third.total_xp == 60

    async def test_freeze_token_bridges_missed_day(self, progression_service):
        await progression_service.record_session_completion("user-1", DAY, 0)
        await progression_service.grant_freeze_tokens("user-1")

        result = await progression_service.record_session_completion(
            "user-1", DAY + timedelta(days=2), 0
        )
        snapshot = await progression_service.get_progression("user-1")

        assert result.new_streak == 2
        assert result.freeze_consumed is True
        assert snapshot.record.streak_freeze_tokens == 0

    async def test_level_recomputed_from_awarded_xp(self, progression_service):
        result = await progression_service.record_session_completion("user-1", DAY, 180)

        assert result.new_level == 3
        assert result.leveled_up is True

    async def test_events_published_after_write(
        self, progression_repository, outcome_log, test_config, mock_logger
    ):
        bus = EventBus()
        service = _service(progression_repository, outcome_log, test_config, bus, mock_logger)
        seen = []

        async def on_recorded(payload):
            stored = await progression_repository.get(payload["user_id"])
            seen.append((stored.version, stored.total_xp, payload["xp_amount"]))

        bus.subscribe("progression.session_recorded", on_recorded)

        await service.record_session_completion("user-1", DAY, 30)

        assert seen == [(1, 30, 30)]

    async def test_published_event_names(self, progression_service, mock_event_bus):
        await progression_service.record_session_completion("user-1", DAY, 60)

        events = published_events(mock_event_bus)
        assert set(events) == {
            "progression.session_recorded",
            "progression.leveled_up",
            "progression.achievement_unlocked",
        }
        assert events["progression.leveled_up"][0]["new_level"] == 2
        assert events["progression.achievement_unlocked"][0]["achievement_id"] == "first_steps"

    async def test_negative_xp_logged_and_ignored(self, progression_service, mock_logger):
        result = await progression_service.record_session_completion("user-1", DAY, -15)

        assert result.total_xp == 0
        mock_logger.warning.assert_called()

    @pytest.mark.parametrize("amount, expected", [(2.7, 3), (2.5, 3), (2.2, 2)])
    async def test_fractional_xp_rounded_and_logged(
        self, progression_service, mock_logger, amount, expected
    ):
        result = await progression_service.record_session_completion("user-1", DAY, amount)

        assert result.total_xp == expected
        mock_logger.warning.assert_called()

    async def test_whole_float_xp_accepted_silently(self, progression_service, mock_logger):
        result = await progression_service.award_xp("user-1", 40.0)

        assert result.new_total == 40
        mock_logger.warning.assert_not_called()

    @pytest.mark.parametrize("amount", [float("nan"), float("inf")])
    async def test_non_finite_xp_treated_as_zero(self, progression_service, amount):
        result = await progression_service.award_xp("user-1", amount)

        assert result.new_total == 0

    async def test_none_xp_and_duration_default_to_zero(self, progression_service):
        result = await progression_service.record_session_completion(
            "user-1", DAY, None, practice_seconds=None
        )

        assert result.total_xp == 0
        assert result.new_streak == 1

    async def test_practice_seconds_accumulate(self, progression_service):
        await progression_service.record_session_completion("user-1", DAY, 5, practice_seconds=120)
        await progression_service.record_session_completion("user-1", DAY, 5, practice_seconds=90)

        snapshot = await progression_service.get_progression("user-1")

        assert snapshot.record.total_practice_seconds == 210
        assert snapshot.record.total_exercises_completed == 2

    async def test_outcome_record_instance_is_logged(self, progression_service, outcome_log):
        record = TechniqueOutcomeRecord(category="stuttering_modification", self_rated_fluency=6)

        await progression_service.record_session_completion("user-1", DAY, 5, outcome=record)

        assert (await outcome_log.latest("user-1")) == [record]

    async def test_invalid_outcome_rejected_before_any_write(
        self, progression_service, progression_repository
    ):
        with pytest.raises(ValidationError) as exc_info:
            await progression_service.record_session_completion(
                "user-1", DAY, 5, outcome={"category": "telepathy"}
            )

        assert exc_info.value.field == "category"
        assert isinstance(exc_info.value.__cause__, DomainValidationError)
        assert len(progression_repository) == 0

    async def test_camel_case_outcome_mapping_is_logged(self, progression_service, outcome_log):
        await progression_service.record_session_completion(
            "user-1",
            DAY,
            10,
            {"category": "fluency_shaping", "confidenceDelta": 2.0, "sessionMood": "calm"},
        )

        (logged,) = await outcome_log.latest("user-1")
        assert logged.confidence_delta == 2.0

    async def test_outcome_without_category_rejected(
        self, progression_service, progression_repository
    ):
        with pytest.raises(ValidationError) as exc_info:
            await progression_service.record_session_completion(
                "user-1", DAY, 5, outcome={"confidenceDelta": 1.0}
            )

        assert exc_info.value.field == "category"
        assert len(progression_repository) == 0

    async def test_non_mapping_outcome_rejected(self, progression_service):
        with pytest.raises(ValidationError) as exc_info:
            await progression_service.record_session_completion(
                "user-1", DAY, 5, outcome="fluency_shaping"
            )

        assert exc_info.value.field == "outcome"

    async def test_timestamp_must_be_a_date(self, progression_service):
        with pytest.raises(ValidationError):
            await progression_service.record_session_completion("user-1", "2024-05-10", 5)

    async def test_negative_duration_rejected(self, progression_service):
        with pytest.raises(ValidationError):
            await progression_service.record_session_completion(
                "user-1", DAY, 5, practice_seconds=-1
            )

    async def test_out_of_order_session_is_logged_not_rejected(
        self, progression_service, mock_logger, mock_event_bus
    ):
        await progression_service.record_session_completion("user-1", DAY, 5)

        result = await progression_service.record_session_completion(
            "user-1", DAY - timedelta(days=2), 5
        )

        assert result.new_streak == 1
        assert result.out_of_order is True
        mock_logger.warning.assert_called()
        assert "progression.streak_anomaly" in published_events(mock_event_bus)

    async def test_replayed_session_keeps_latest_practice_day(self, progression_service):
        for offset in range(10):
            await progression_service.record_session_completion(
                "user-1", DAY + timedelta(days=offset), 5
            )
        await progression_service.record_session_completion(
            "user-1", DAY + timedelta(days=4), 5
        )

        result = await progression_service.record_session_completion(
            "user-1", DAY + timedelta(days=10), 5
        )
        snapshot = await progression_service.get_progression("user-1")

        assert result.new_streak == 2
        assert result.longest_streak == 10
        assert snapshot.record.last_practice_date == DAY + timedelta(days=10)

    async def test_streak_timezone_from_config(self, progression_service, test_config):
        test_config.set("STREAK_TIMEZONE", timezone(timedelta(hours=9)))
        await progression_service.record_session_completion("user-1", DAY, 0)

        result = await progression_service.record_session_completion(
            "user-1", datetime(2024, 5, 10, 20, 0, tzinfo=timezone.utc), 0
        )

        assert result.new_streak == 2


# ============================================================================
# XP & TOKENS
# ============================================================================


@pytest.mark.unit
class TestAwardXp:
    async def test_award_accumulates(self, progression_service):
        await progression_service.award_xp("user-1", 30)
        result = await progression_service.award_xp("user-1", 30, source="weekly_audit")

        assert result.new_total == 60
        assert result.new_level == 2
        assert result.leveled_up is True

    async def test_award_does_not_touch_streak(self, progression_service):
        await progression_service.award_xp("user-1", 30)

        snapshot = await progression_service.get_progression("user-1")

        assert snapshot.record.current_streak == 0
        assert snapshot.record.total_exercises_completed == 0


@pytest.mark.unit
class TestFreezeTokens:
    async def test_grant_returns_balance(self, progression_service):
        assert await progression_service.grant_freeze_tokens("user-1", 2) == 2
        assert await progression_service.grant_freeze_tokens("user-1") == 3

    async def test_grant_requires_positive_count(self, progression_service):
        with pytest.raises(ValidationError):
            await progression_service.grant_freeze_tokens("user-1", 0)

    async def test_use_without_tokens_writes_nothing(
        self, progression_service, progression_repository, mock_event_bus
    ):
        assert await progression_service.use_freeze_token("user-1") is False
        assert len(progression_repository) == 0
        mock_event_bus.publish.assert_not_awaited()

    async def test_use_spends_one(self, progression_service):
        await progression_service.grant_freeze_tokens("user-1", 2)

        assert await progression_service.use_freeze_token("user-1") is True

        snapshot = await progression_service.get_progression("user-1")
        assert snapshot.record.streak_freeze_tokens == 1

    async def test_transfer_moves_one_token(self, progression_service, mock_event_bus):
        await progression_service.grant_freeze_tokens("alice", 1)

        moved = await progression_service.transfer_freeze_token("alice", "bob")

        alice = await progression_service.get_progression("alice")
        bob = await progression_service.get_progression("bob")
        assert moved is True
        assert alice.record.streak_freeze_tokens == 0
        assert bob.record.streak_freeze_tokens == 1
        changes = published_events(mock_event_bus)["progression.tokens_changed"]
        reasons = [payload["reason"] for payload in changes]
        assert reasons == ["grant", "gift_to:bob", "gift_from:alice"]

    async def test_transfer_without_tokens_changes_nothing(
        self, progression_service, progression_repository
    ):
        moved = await progression_service.transfer_freeze_token("alice", "bob")

        assert moved is False
        assert len(progression_repository) == 0

    async def test_transfer_to_self_rejected(self, progression_service):
        with pytest.raises(InvalidOperationError):
            await progression_service.transfer_freeze_token("alice", "alice")

    async def test_failed_credit_refunds_sender(
        self, outcome_log, test_config, mock_event_bus, mock_logger
    ):
        repository = RejectingProgressionRepository("bob")
        service = _service(repository, outcome_log, test_config, mock_event_bus, mock_logger)
        await service.grant_freeze_tokens("alice", 1)
        mock_event_bus.publish.reset_mock()

        with pytest.raises(PersistenceConflictError):
            await service.transfer_freeze_token("alice", "bob")

        alice = await repository.get("alice")
        assert alice.streak_freeze_tokens == 1
        assert await repository.get("bob") is None
        mock_event_bus.publish.assert_not_awaited()
        mock_logger.warning.assert_called()


@pytest.mark.unit
class TestAchievementsAndProgramDay:
    async def test_session_result_lists_unlocked_badges(self, progression_service):
        result = await progression_service.record_session_completion("user-1", DAY, 10)

        snapshot = await progression_service.get_progression("user-1")
        assert result.achievements_unlocked == ("first_steps",)
        assert snapshot.record.achievements == ("first_steps",)

    async def test_external_counters_unlock_and_persist(
        self, progression_service, mock_event_bus
    ):
        unlocked = await progression_service.check_achievements(
            "user-1", {"ai_conversations": 10}
        )

        snapshot = await progression_service.get_progression("user-1")
        assert [a.id for a in unlocked] == ["brave_caller", "social_butterfly"]
        assert snapshot.record.achievements == ("brave_caller", "social_butterfly")
        assert len(published_events(mock_event_bus)["progression.achievement_unlocked"]) == 2

    async def test_recheck_without_progress_writes_nothing(
        self, progression_service, progression_repository
    ):
        await progression_service.check_achievements("user-1", {"journals": 7})
        version = (await progression_repository.get("user-1")).version

        assert await progression_service.check_achievements("user-1", {"journals": 8}) == []
        assert (await progression_repository.get("user-1")).version == version

    @pytest.mark.parametrize(
        "extra, field",
        [
            ({"followers": 3}, "extra_stats"),
            ({"journals": -1}, "journals"),
            ({"journals": 2.5}, "journals"),
            ({"stress_level3_high_fluency": "yes"}, "stress_level3_high_fluency"),
        ],
    )
    async def test_malformed_counters_rejected(
        self, progression_service, progression_repository, extra, field
    ):
        with pytest.raises(ValidationError) as exc_info:
            await progression_service.check_achievements("user-1", extra)

        assert exc_info.value.field == field
        assert len(progression_repository) == 0

    async def test_status_covers_whole_catalogue(self, progression_service):
        await progression_service.record_session_completion("user-1", DAY, 10)

        status = await progression_service.get_achievement_status("user-1")

        earned = [s.achievement.id for s in status if s.unlocked]
        assert earned == ["first_steps"]
        assert len(status) == len(ACHIEVEMENTS)

    async def test_status_for_unknown_user_is_all_locked(
        self, progression_service, progression_repository
    ):
        status = await progression_service.get_achievement_status("nobody")

        assert not any(s.unlocked for s in status)
        assert len(progression_repository) == 0

    async def test_advance_day_counts_up(self, progression_service, mock_event_bus):
        assert await progression_service.advance_day("user-1") == 2
        assert await progression_service.advance_day("user-1") == 3

        snapshot = await progression_service.get_progression("user-1")
        assert snapshot.record.current_day == 3
        days = published_events(mock_event_bus)["progression.day_advanced"]
        assert [p["current_day"] for p in days] == [2, 3]

    async def test_concurrent_advances_are_not_lost(self, progression_service):
        await asyncio.gather(*(progression_service.advance_day("user-1") for _ in range(5)))

        snapshot = await progression_service.get_progression("user-1")
        assert snapshot.record.current_day == 6


# ============================================================================
# CONCURRENCY
# ============================================================================


@pytest.mark.unit
class TestCompareAndSwapRetries:
    async def test_conflict_recomputes_from_fresh_read(
        self, outcome_log, test_config, mock_event_bus, mock_logger
    ):
        repository = RacingProgressionRepository(races=1)
        service = _service(repository, outcome_log, test_config, mock_event_bus, mock_logger)

        result = await service.record_session_completion("user-1", DAY, 10)

        assert result.total_xp == 110
        assert repository.upsert_calls == 2
        mock_logger.warning.assert_called()

    async def test_exhausted_retries_raise_and_skip_side_effects(
        self, outcome_log, test_config, mock_event_bus, mock_logger
    ):
        repository = RacingProgressionRepository(races=3)
        service = _service(repository, outcome_log, test_config, mock_event_bus, mock_logger)

        with pytest.raises(PersistenceConflictError) as exc_info:
            await service.record_session_completion(
                "user-1", DAY, 10, outcome={"category": "fluency_shaping"}
            )

        assert exc_info.value.is_retryable is True
        assert repository.upsert_calls == 3
        assert outcome_log.count("user-1") == 0
        mock_event_bus.publish.assert_not_awaited()
        mock_logger.error.assert_called_once()

    async def test_retry_budget_from_config(
        self, outcome_log, test_config, mock_event_bus, mock_logger
    ):
        test_config.set("PROGRESSION_MAX_UPDATE_RETRIES", 1)
        repository = RacingProgressionRepository(races=1)
        service = _service(repository, outcome_log, test_config, mock_event_bus, mock_logger)

        with pytest.raises(PersistenceConflictError):
            await service.award_xp("user-1", 10)

        assert repository.upsert_calls == 1


@pytest.mark.unit
class TestPerUserSerialisation:
    async def test_concurrent_awards_do_not_lose_updates(self, progression_service):
        await asyncio.gather(*(progression_service.award_xp("user-1", 5) for _ in range(20)))

        snapshot = await progression_service.get_progression("user-1")

        assert snapshot.record.total_xp == 100
        assert snapshot.record.version == 20

    async def test_concurrent_same_day_sessions_count_every_exercise(self, progression_service):
        await asyncio.gather(
            *(progression_service.record_session_completion("user-1", DAY, 3) for _ in range(10))
        )

        snapshot = await progression_service.get_progression("user-1")

        assert snapshot.record.current_streak == 1
        assert snapshot.record.total_exercises_completed == 10
        assert snapshot.record.total_xp == 30

    async def test_crossed_transfers_do_not_deadlock(self, progression_service):
        await progression_service.grant_freeze_tokens("alice", 5)
        await progression_service.grant_freeze_tokens("bob", 5)

        results = await asyncio.wait_for(
            asyncio.gather(
                *(
                    progression_service.transfer_freeze_token(a, b)
                    for a, b in [("alice", "bob"), ("bob", "alice")] * 4
                )
            ),
            timeout=5,
        )

        alice = await progression_service.get_progression("alice")
        bob = await progression_service.get_progression("bob")
        assert all(results)
        assert alice.record.streak_freeze_tokens + bob.record.streak_freeze_tokens == 10

    async def test_services_sharing_storage_see_each_others_writes(
        self, test_config, mock_event_bus, mock_logger
    ):
        repository = InMemoryProgressionRepository()
        log = InMemoryOutcomeLog()
        first = _service(repository, log, test_config, mock_event_bus, mock_logger)
        second = _service(repository, log, test_config, mock_event_bus, mock_logger)

        await first.award_xp("user-1", 10)
        await second.award_xp("user-1", 10)

        snapshot = await first.get_progression("user-1")
        assert snapshot.record.total_xp == 20
