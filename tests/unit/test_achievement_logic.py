"""
Unit tests for the achievement catalogue.
"""

import pytest

from src.domain.models.progression import AchievementStats
from src.modules.progression.achievement_logic import (
    ACHIEVEMENTS,
    EXTERNAL_COUNTERS,
    EXTERNAL_FLAGS,
    achievement_status,
    find_achievement,
    newly_unlocked,
    validate_extra_stats,
)
from src.modules.shared.exceptions import ValidationError


@pytest.mark.unit
class TestCatalogue:
    def test_ids_are_unique(self):
        ids = [a.id for a in ACHIEVEMENTS]

        assert len(ids) == len(set(ids))

    def test_every_metric_is_a_stat(self):
        stats = AchievementStats()

        for achievement in ACHIEVEMENTS:
            assert stats.value(achievement.metric) == 0

    def test_find_by_id(self):
        assert find_achievement("century").threshold == 100
        assert find_achievement("no_such_badge") is None


@pytest.mark.unit
class TestNewlyUnlocked:
    def test_empty_stats_unlock_nothing(self):
        assert newly_unlocked(AchievementStats(), []) == []

    def test_thresholds_are_inclusive(self):
        unlocked = newly_unlocked(AchievementStats(exercises_completed=10), [])

        assert [a.id for a in unlocked] == ["first_steps", "warm_up", "ten_sessions"]

    def test_already_earned_are_skipped(self):
        unlocked = newly_unlocked(
            AchievementStats(exercises_completed=10), ["first_steps", "ten_sessions"]
        )

        assert [a.id for a in unlocked] == ["warm_up"]

    @pytest.mark.parametrize(
        "current,longest",
        [(14, 14), (2, 14)],
    )
    def test_streak_badges_use_best_streak(self, current, longest):
        stats = AchievementStats(current_streak=current, longest_streak=longest)

        unlocked = [a.id for a in newly_unlocked(stats, [])]

        assert unlocked == ["streak_3", "streak_7", "streak_14"]

    def test_practice_time_in_seconds(self):
        stats = AchievementStats(practice_seconds=18000)

        assert [a.id for a in newly_unlocked(stats, [])] == ["hour_one", "five_hours"]

    def test_stress_flag(self):
        assert newly_unlocked(AchievementStats(stress_level3_high_fluency=False), []) == []
        assert [
            a.id for a in newly_unlocked(AchievementStats(stress_level3_high_fluency=True), [])
        ] == ["ice_under_fire"]


@pytest.mark.unit
class TestAchievementStatus:
    def test_flags_follow_earned_ids(self):
        status = achievement_status(["journaler"])

        assert len(status) == len(ACHIEVEMENTS)
        assert [s.achievement.id for s in status if s.unlocked] == ["journaler"]

    def test_unknown_earned_ids_are_ignored(self):
        status = achievement_status(["retired_badge"])

        assert not any(s.unlocked for s in status)


@pytest.mark.unit
class TestValidateExtraStats:
    def test_none_and_empty_give_no_counters(self):
        assert validate_extra_stats(None) == {}
        assert validate_extra_stats({}) == {}

    def test_every_external_key_accepted(self):
        extra = {key: 1 for key in EXTERNAL_COUNTERS}
        extra.update({key: True for key in EXTERNAL_FLAGS})

        assert validate_extra_stats(extra) == extra

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_extra_stats({"total_xp": 5000})

        assert exc_info.value.field == "extra_stats"

    @pytest.mark.parametrize("value", [-1, 1.5, "3", True, None])
    def test_counter_must_be_non_negative_int(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_extra_stats({"weekly_audits": value})

        assert exc_info.value.field == "weekly_audits"

    def test_flag_must_be_bool(self):
        with pytest.raises(ValidationError):
            validate_extra_stats({"stress_level3_high_fluency": 1})
