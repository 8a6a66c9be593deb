"""
Assessment Service
==================

Purpose
-------
Scores the onboarding questionnaire and announces the result on the event
bus (``assessment.scored``) so program setup and analytics can react.
Scoring itself is pure and lives in ``scoring_logic``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional, Type, Union

from src.domain.models.assessment import AssessmentInput, AssessmentScoreResult
from src.modules.assessment.scoring_logic import profile_description, score_assessment
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.config import Config
    from src.core.event.bus import EventBus


class AssessmentService(BaseService):
    """Onboarding questionnaire scoring."""

    def __init__(
        self,
        config: Type[Config],
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config, event_bus, logger)

    async def score_onboarding(
        self,
        answers: Union[AssessmentInput, Mapping[str, Any], None],
        user_id: Optional[str] = None,
    ) -> AssessmentScoreResult:
        """
        Score questionnaire answers and publish ``assessment.scored``.

        Args:
            answers: AssessmentInput or a loose answers mapping
            user_id: Optional owner, carried on the event

        Returns:
            AssessmentScoreResult

        Raises:
            ValidationError: ``answers`` is neither an AssessmentInput nor a mapping
        """
        if isinstance(answers, AssessmentInput):
            assessment = answers
        elif answers is None or isinstance(answers, Mapping):
            assessment = AssessmentInput.from_answers(answers)
        else:
            raise ValidationError(
                "answers", f"expected a mapping of answers, got {type(answers).__name__}"
            )

        result = score_assessment(assessment)

        self.log.info(
            "Onboarding assessment scored",
            extra={
                "user_id": user_id or "N/A",
                "severity_score": result.severity_score,
                "confidence_score": result.confidence_score,
                "profile": result.profile.value,
            },
        )

        await self.emit_event(
            "assessment.scored",
            {
                "user_id": user_id,
                "severity_score": result.severity_score,
                "confidence_score": result.confidence_score,
                "profile": result.profile.value,
                "severity_label": result.severity_label.value,
                "recommended_emphasis": result.recommended_emphasis.as_dict(),
            },
        )
        return result

    @staticmethod
    def describe_profile(result: AssessmentScoreResult) -> str:
        return profile_description(result.profile)
