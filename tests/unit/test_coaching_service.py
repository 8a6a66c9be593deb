"""
Unit tests for CoachingService.
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.database.models.enums import TechniqueCategory
from src.domain.models.coaching import TechniqueOutcomeRecord
from src.modules.shared.exceptions import ValidationError

FS = TechniqueCategory.FLUENCY_SHAPING
MOD = TechniqueCategory.STUTTERING_MODIFICATION
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


async def _log(outcome_log, user_id, category, delta, count, start_minutes=0):
    for i in range(count):
        await outcome_log.append_outcome(
            user_id,
            TechniqueOutcomeRecord(
                category=category,
                confidence_delta=delta,
                self_rated_fluency=7.0,
                created_at=NOW - timedelta(minutes=start_minutes + i),
            ),
        )


@pytest.mark.unit
class TestRecommendedWeight:
    async def test_new_user_gets_neutral_weight(self, coaching_service):
        assert await coaching_service.get_recommended_technique_weight("user-1") == 0.5

    async def test_weight_follows_outcomes(self, coaching_service, outcome_log):
        await _log(outcome_log, "user-1", FS, 3.0, 3)
        await _log(outcome_log, "user-1", MOD, 0.5, 3, start_minutes=10)

        weight = await coaching_service.get_recommended_technique_weight("user-1")

        assert weight == 0.7

    async def test_other_users_outcomes_ignored(self, coaching_service, outcome_log):
        await _log(outcome_log, "user-2", FS, 3.0, 5)
        await _log(outcome_log, "user-2", MOD, 0.0, 5, start_minutes=10)

        assert await coaching_service.get_recommended_technique_weight("user-1") == 0.5

    async def test_only_latest_thirty_outcomes_count(self, coaching_service, outcome_log):
        # Old modification sessions pushed out of the window by newer ones
        await _log(outcome_log, "user-1", MOD, 3.0, 10, start_minutes=1000)
        await _log(outcome_log, "user-1", FS, 1.0, 30)

        summary = await coaching_service.get_outcome_summary("user-1")

        assert summary.total_sessions == 30
        assert summary.stuttering_modification.session_count == 0
        assert summary.recommended_weight == 0.5

    async def test_user_id_required(self, coaching_service):
        with pytest.raises(ValidationError):
            await coaching_service.get_recommended_technique_weight("")


@pytest.mark.unit
class TestPlanTechnique:
    async def test_foundation_day(self, coaching_service):
        choice = await coaching_service.plan_technique("user-1", 1)

        assert choice.technique_id == "easy_onset"
        assert choice.phase == "Foundation"

    async def test_maintenance_label_uses_weight(self, coaching_service, outcome_log):
        await _log(outcome_log, "user-1", FS, 0.0, 3)
        await _log(outcome_log, "user-1", MOD, 2.5, 3, start_minutes=10)

        choice = await coaching_service.plan_technique("user-1", 120)

        assert choice.phase == "Maintenance: Modification Focus"

    @pytest.mark.parametrize("day", [0, -4, 1.5, True])
    async def test_invalid_day_rejected(self, coaching_service, day):
        with pytest.raises(ValidationError) as exc_info:
            await coaching_service.plan_technique("user-1", day)

        assert exc_info.value.field == "day"
