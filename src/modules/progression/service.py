"""
Progression Service
===================

Purpose
-------
Owns every write to a user's progression record: completed practice
sessions, standalone XP awards, freeze-token operations, achievement
unlocks and the program day. Reads return a ``ProgressionSnapshot`` whose
level, title and progress are derived from total XP on the spot.

Domain
------
- Streak continuity with one-day freeze-token forgiveness
- XP accumulation and level derivation
- Freeze token grant / use / transfer
- Achievement unlocks and the program day counter
- Appending technique outcomes to the outcome log

Concurrency
-----------
Each update is a read-modify-write on one record:

1. The per-user ``UserLockRegistry`` serialises updates for the same user
   inside this process (transfers lock both users in sorted order).
2. The repository ``upsert`` is a compare-and-swap on ``version``. On
   ``PersistenceConflictError`` the computed update is discarded and
   recomputed from a fresh read, up to ``PROGRESSION_MAX_UPDATE_RETRIES``
   attempts, then the conflict is re-raised.

The outcome record is appended and events are published only after the
progression record has been written. Events are published after the user
lock is released so listeners may call back into the service.

Dependencies
------------
- ProgressionRepository / OutcomeLogRepository: persistence
- Config: retry budget and streak timezone
- EventBus: progression.* events
- Logger: structured logging
"""

from __future__ import annotations

import math
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from src.domain.models.base import DomainEvent, DomainValidationError
from src.domain.models.coaching import TechniqueOutcomeRecord
from src.domain.models.progression import (
    Achievement,
    AchievementStatus,
    LevelInfo,
    ProgressionSnapshot,
    SessionCompletionResult,
    UserProgressionRecord,
    XpAwardResult,
)
from src.domain.models.user_progression import UserProgression
from src.modules.progression.achievement_logic import (
    achievement_status,
    validate_extra_stats,
)
from src.modules.progression.level_logic import level_for_xp
from src.modules.progression.locks import UserLockRegistry
from src.modules.progression.streak_logic import PracticeMoment
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import PersistenceConflictError, ValidationError
from src.modules.shared.formulas import round_half_up
from src.modules.shared.validators import (
    validate_distinct_users,
    validate_non_negative_seconds,
    validate_positive_amount,
    validate_practice_moment,
    validate_user_id,
)

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.config import Config
    from src.core.event.bus import EventBus
    from src.modules.progression.repository import (
        OutcomeLogRepository,
        ProgressionRepository,
    )

R = TypeVar("R")

OutcomeInput = Union[TechniqueOutcomeRecord, Mapping[str, Any]]


class ProgressionService(BaseService):
    """
    Service for practice sessions, XP and freeze tokens.

    Public Methods
    --------------
    - record_session_completion() -> Apply a completed session
    - award_xp() -> Add XP outside of a session
    - grant_freeze_tokens() -> Add freeze tokens
    - use_freeze_token() -> Spend one freeze token
    - transfer_freeze_token() -> Gift one token to another user
    - check_achievements() -> Unlock badges from external counters
    - get_achievement_status() -> Catalogue with earned flags
    - advance_day() -> Next program day
    - get_progression() -> Snapshot with derived level
    - get_level_info() -> Level for an XP total (stateless)
    """

    def __init__(
        self,
        progression_repository: ProgressionRepository,
        outcome_log: OutcomeLogRepository,
        config: Type[Config],
        event_bus: EventBus,
        logger: Logger,
        locks: Optional[UserLockRegistry] = None,
    ) -> None:
        super().__init__(config, event_bus, logger)
        self._progression = progression_repository
        self._outcomes = outcome_log
        self._locks = locks or UserLockRegistry()

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_progression(self, user_id: str) -> ProgressionSnapshot:
        """
        Current progression for a user, creating the default record if the
        user has none yet.

        Raises:
            ValidationError: Empty user id
        """
        user_id = validate_user_id(user_id)

        record = await self._progression.get(user_id)
        if record is None:
            async with self._locks.hold(user_id):
                record = await self._get_or_create(user_id)

        return ProgressionSnapshot(record=record, level_info=level_for_xp(record.total_xp))

    @staticmethod
    def get_level_info(total_xp: int) -> LevelInfo:
        """
        Level, title and progress for an XP total.

        Example:
            >>> ProgressionService.get_level_info(112).progress_percent
            50
        """
        return level_for_xp(total_xp)

    # ========================================================================
    # PUBLIC API - Write Operations (sessions & XP)
    # ========================================================================

    async def record_session_completion(
        self,
        user_id: str,
        practice_timestamp: PracticeMoment,
        xp_amount: Optional[int],
        outcome: Optional[OutcomeInput] = None,
        practice_seconds: Optional[int] = 0,
    ) -> SessionCompletionResult:
        """
        Record one completed practice session.

        Args:
            user_id: Owner of the progression record
            practice_timestamp: When the session happened (date or datetime)
            xp_amount: XP earned; None or negative counts as 0
            outcome: Optional technique outcome (record or mapping) to log
            practice_seconds: Session length for the lifetime counter

        Returns:
            SessionCompletionResult

        Raises:
            ValidationError: Empty user id, bad timestamp, duration or outcome
            PersistenceConflictError: Retry budget exhausted
        """
        user_id = validate_user_id(user_id)
        practice_timestamp = validate_practice_moment(practice_timestamp)
        practice_seconds = validate_non_negative_seconds(practice_seconds, "practice_seconds")
        xp = self._normalise_xp(user_id, xp_amount, "record_session_completion")
        outcome_record = self._build_outcome(outcome)
        tz = self.get_config("STREAK_TIMEZONE", "UTC")

        self.log_operation(
            "record_session_completion",
            user_id=user_id,
            xp_amount=xp,
            has_outcome=outcome_record is not None,
        )

        async with self._locks.hold(user_id):
            result, events = await self._apply(
                user_id,
                "record_session_completion",
                lambda progression: progression.register_practice(
                    practice_timestamp, xp, practice_seconds, tz
                ),
            )

        if result.out_of_order:
            self.log.warning(
                "Practice session dated before the previous practice day; streak reset",
                extra={"user_id": user_id, "practice_timestamp": str(practice_timestamp)},
            )

        if outcome_record is not None:
            await self._outcomes.append_outcome(user_id, outcome_record)

        await self._publish(events)

        self.log.info(
            "Session recorded",
            extra={
                "user_id": user_id,
                "streak": result.new_streak,
                "freeze_consumed": result.freeze_consumed,
                "level": result.new_level,
                "leveled_up": result.leveled_up,
                "total_xp": result.total_xp,
            },
        )
        return result

    async def award_xp(
        self, user_id: str, amount: Optional[int], source: str = "manual"
    ) -> XpAwardResult:
        """
        Add XP outside of a practice session.

        Raises:
            ValidationError: Empty user id
            PersistenceConflictError: Retry budget exhausted
        """
        user_id = validate_user_id(user_id)
        xp = self._normalise_xp(user_id, amount, "award_xp")

        self.log_operation("award_xp", user_id=user_id, amount=xp, source=source)

        async with self._locks.hold(user_id):
            result, events = await self._apply(
                user_id,
                "award_xp",
                lambda progression: progression.add_experience(xp, source=source),
            )

        await self._publish(events)
        return result

    # ========================================================================
    # PUBLIC API - Achievements & Program Day
    # ========================================================================

    async def check_achievements(
        self, user_id: str, extra_stats: Optional[Mapping[str, Any]] = None
    ) -> List[Achievement]:
        """
        Unlock badges that depend on counters tracked outside this service.

        Sessions and XP awards already unlock the badges the record can see;
        call this when e.g. the journal or AI conversation count changes.

        Args:
            user_id: Owner of the progression record
            extra_stats: e.g. ``{"journals": 7, "ai_conversations": 2}``

        Returns:
            Newly earned achievements, empty when nothing changed

        Raises:
            ValidationError: Empty user id, unknown or malformed counter
        """
        user_id = validate_user_id(user_id)
        extra = validate_extra_stats(extra_stats)

        async with self._locks.hold(user_id):
            unlocked, events = await self._apply(
                user_id,
                "check_achievements",
                lambda progression: progression.check_achievements(extra),
            )

        self.log_operation(
            "check_achievements",
            user_id=user_id,
            unlocked=[achievement.id for achievement in unlocked],
        )
        await self._publish(events)
        return unlocked

    async def get_achievement_status(self, user_id: str) -> List[AchievementStatus]:
        """Whole catalogue with the user's earned flags; never writes."""
        user_id = validate_user_id(user_id)
        record = await self._progression.get(user_id)
        return achievement_status(record.achievements if record is not None else ())

    async def advance_day(self, user_id: str) -> int:
        """
        Move the user to the next program day.

        Returns:
            The new program day (2 after the first call)
        """
        user_id = validate_user_id(user_id)

        async with self._locks.hold(user_id):
            current_day, events = await self._apply(
                user_id,
                "advance_day",
                lambda progression: progression.advance_day(),
            )

        self.log_operation("advance_day", user_id=user_id, current_day=current_day)
        await self._publish(events)
        return current_day

    # ========================================================================
    # PUBLIC API - Write Operations (freeze tokens)
    # ========================================================================

    async def grant_freeze_tokens(self, user_id: str, count: int = 1) -> int:
        """
        Add freeze tokens.

        Returns:
            New token balance

        Raises:
            ValidationError: Empty user id or non-positive count
        """
        user_id = validate_user_id(user_id)
        count = validate_positive_amount(count, "count")

        self.log_operation("grant_freeze_tokens", user_id=user_id, count=count)

        async with self._locks.hold(user_id):
            balance, events = await self._apply(
                user_id,
                "grant_freeze_tokens",
                lambda progression: progression.grant_freeze_tokens(count),
            )

        await self._publish(events)
        return balance

    async def use_freeze_token(self, user_id: str) -> bool:
        """
        Spend one freeze token.

        Returns:
            False when the user holds no tokens (nothing is written)
        """
        user_id = validate_user_id(user_id)

        async with self._locks.hold(user_id):
            used, events = await self._apply(
                user_id,
                "use_freeze_token",
                lambda progression: progression.use_freeze_token(),
            )

        self.log_operation("use_freeze_token", user_id=user_id, used=used)
        await self._publish(events)
        return used

    async def transfer_freeze_token(self, from_user_id: str, to_user_id: str) -> bool:
        """
        Move one freeze token from one user to another.

        The sender's debit is written first; the recipient's credit is then
        applied with its own compare-and-swap retries. If the credit fails the
        sender is refunded and the error re-raised. Both users' locks are
        held for the whole operation.

        Returns:
            False when the sender holds no tokens (nothing is written)

        Raises:
            ValidationError: Empty user id
            InvalidOperationError: Sender and recipient are the same user
        """
        from_user_id = validate_user_id(from_user_id)
        to_user_id = validate_user_id(to_user_id)
        validate_distinct_users(from_user_id, to_user_id)

        async with self._locks.hold(from_user_id, to_user_id):
            sent, events = await self._apply(
                from_user_id,
                "transfer_freeze_token",
                lambda progression: progression.use_freeze_token(
                    reason=f"gift_to:{to_user_id}"
                ),
            )
            if sent:
                try:
                    _, received_events = await self._apply(
                        to_user_id,
                        "transfer_freeze_token",
                        lambda progression: progression.grant_freeze_tokens(
                            1, reason=f"gift_from:{from_user_id}"
                        ),
                    )
                except Exception as exc:
                    await self._refund_sender(from_user_id, to_user_id, exc)
                    raise
                events.extend(received_events)

        self.log_operation(
            "transfer_freeze_token",
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            transferred=sent,
        )
        await self._publish(events)
        return sent

    # ========================================================================
    # PRIVATE HELPERS
    # ========================================================================

    async def _refund_sender(self, from_user_id: str, to_user_id: str, cause: Exception) -> None:
        """
        Give the debited token back after the recipient's credit failed.

        Caller holds both users' locks. Nothing is published: the transfer
        as a whole did not happen.
        """
        self.log.warning(
            "Freeze token credit failed, refunding sender",
            extra={
                "user_id": from_user_id,
                "to_user_id": to_user_id,
                "error": str(cause),
            },
        )
        try:
            await self._apply(
                from_user_id,
                "transfer_freeze_token.refund",
                lambda progression: progression.grant_freeze_tokens(
                    1, reason=f"refund:gift_to:{to_user_id}"
                ),
            )
        except Exception as refund_error:
            self.log.critical(
                "Freeze token refund failed; sender is one token short",
                exc_info=True,
                extra={
                    "user_id": from_user_id,
                    "to_user_id": to_user_id,
                    "error": str(refund_error),
                },
            )

    async def _get_or_create(self, user_id: str) -> UserProgressionRecord:
        record = await self._progression.get(user_id)
        if record is not None:
            return record
        try:
            record = await self._progression.upsert(UserProgressionRecord.new(user_id), 0)
        except PersistenceConflictError:
            # Created concurrently by another process
            record = await self._progression.get(user_id)
            if record is None:
                raise
            return record

        self.log.info("Progression record created", extra={"user_id": user_id})
        return record

    async def _apply(
        self,
        user_id: str,
        operation: str,
        mutate: Callable[[UserProgression], R],
    ) -> Tuple[R, List[DomainEvent]]:
        """
        Load, mutate and compare-and-swap one user's record.

        Caller must hold the user's lock. A mutation that queues no domain
        event changed nothing and is not written.
        """
        attempts = max(1, int(self.get_config("PROGRESSION_MAX_UPDATE_RETRIES", 3)))

        async with self.operation_context(operation, user_id):
            for attempt in range(1, attempts + 1):
                record = await self._progression.get(user_id) or UserProgressionRecord.new(
                    user_id
                )
                progression = UserProgression.from_record(record)
                result = mutate(progression)

                if not progression.get_pending_events():
                    return result, []

                try:
                    await self._progression.upsert(progression.to_record(), record.version)
                except PersistenceConflictError as exc:
                    if attempt >= attempts:
                        self.log_error(operation, exc, user_id=user_id, attempts=attempt)
                        raise
                    self.log.warning(
                        "Progression write conflict, retrying from a fresh read",
                        extra={
                            "user_id": user_id,
                            "operation": operation,
                            "attempt": attempt,
                            "expected_version": record.version,
                        },
                    )
                    continue

                return result, progression.clear_domain_events()

        raise AssertionError("unreachable")

    async def _publish(self, events: List[DomainEvent]) -> None:
        for event in events:
            await self.emit_event(event.event_name, event.payload)

    def _normalise_xp(self, user_id: str, amount: Optional[int], operation: str) -> int:
        if amount is None:
            return 0
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            self.log.warning(
                "Non-numeric XP amount treated as 0",
                extra={"user_id": user_id, "operation": operation, "xp_amount": repr(amount)},
            )
            return 0
        if not math.isfinite(amount):
            self.log.warning(
                "Non-finite XP amount treated as 0",
                extra={"user_id": user_id, "operation": operation, "xp_amount": repr(amount)},
            )
            return 0
        if amount < 0:
            self.log.warning(
                "Negative XP amount treated as 0",
                extra={"user_id": user_id, "operation": operation, "xp_amount": amount},
            )
            return 0
        if isinstance(amount, float) and not amount.is_integer():
            rounded = round_half_up(amount)
            self.log.warning(
                "Fractional XP amount rounded",
                extra={
                    "user_id": user_id,
                    "operation": operation,
                    "xp_amount": amount,
                    "rounded_to": rounded,
                },
            )
            return rounded
        return int(amount)

    @staticmethod
    def _build_outcome(outcome: Optional[OutcomeInput]) -> Optional[TechniqueOutcomeRecord]:
        if outcome is None or isinstance(outcome, TechniqueOutcomeRecord):
            return outcome
        if not isinstance(outcome, Mapping):
            raise ValidationError("outcome", f"expected a mapping, got {type(outcome).__name__}")
        try:
            return TechniqueOutcomeRecord.from_mapping(outcome)
        except DomainValidationError as exc:
            raise ValidationError(exc.field or "outcome", exc.message) from exc
