"""
Coaching Service
================

Purpose
-------
Read side of the adaptive coaching loop: turns a user's technique outcome
log into the fluency-shaping weight and plans the technique for a program
day. Writes to the log happen in ``ProgressionService`` when a session is
recorded.

Dependencies
------------
- OutcomeLogRepository: newest-first outcome reads
- Config / EventBus / Logger: via BaseService
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Type

from src.domain.models.coaching import OutcomeSummary, TechniqueChoice
from src.modules.coaching.outcome_logic import summarize_outcomes
from src.modules.coaching.weight_logic import select_technique_for_day
from src.modules.shared.base_service import BaseService
from src.modules.shared.constants import OUTCOME_WINDOW_SIZE
from src.modules.shared.validators import validate_program_day, validate_user_id

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.config import Config
    from src.core.event.bus import EventBus
    from src.modules.progression.repository import OutcomeLogRepository


class CoachingService(BaseService):
    """
    Outcome-driven technique weighting.

    Public Methods
    --------------
    - get_recommended_technique_weight() -> Fluency-shaping share in [0.3, 0.7]
    - get_outcome_summary() -> Per-category statistics plus weight
    - plan_technique() -> Technique for a program day
    """

    def __init__(
        self,
        outcome_log: OutcomeLogRepository,
        config: Type[Config],
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config, event_bus, logger)
        self._outcomes = outcome_log

    async def get_outcome_summary(self, user_id: str) -> OutcomeSummary:
        """
        Statistics over the user's latest outcomes.

        Raises:
            ValidationError: Empty user id
        """
        user_id = validate_user_id(user_id)
        outcomes = await self._outcomes.latest(user_id, limit=OUTCOME_WINDOW_SIZE)
        summary = summarize_outcomes(outcomes)

        self.log.debug(
            "Outcome summary computed",
            extra={
                "user_id": user_id,
                "total_sessions": summary.total_sessions,
                "fs_sessions": summary.fluency_shaping.session_count,
                "mod_sessions": summary.stuttering_modification.session_count,
                "recommended_weight": summary.recommended_weight,
            },
        )
        return summary

    async def get_recommended_technique_weight(self, user_id: str) -> float:
        """Fluency-shaping share for the user's next sessions."""
        summary = await self.get_outcome_summary(user_id)
        return summary.recommended_weight

    async def plan_technique(self, user_id: str, day: int) -> TechniqueChoice:
        """
        Technique for one program day, weighted by the user's outcomes.

        Raises:
            ValidationError: Empty user id or day below 1
        """
        day = validate_program_day(day)
        weight = await self.get_recommended_technique_weight(user_id)
        choice = select_technique_for_day(day, weight)

        self.log_operation(
            "plan_technique",
            user_id=user_id,
            day=day,
            weight=weight,
            technique_id=choice.technique_id,
        )
        return choice
