"""Completion service - turns a submitted daily task into XP, level, streak and badges."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.core.exceptions import CompletionValidationError, DuplicateCompletion, StorageFailure
from questlog.models.entry import Entry
from questlog.services.achievements import AchievementService, ProgressionSnapshot, evaluate_achievements
from questlog.services.gamification import compute_xp, level_for, update_streak
from questlog.services.progression import ProgressionService

logger = logging.getLogger(__name__)

ANXIETY_MIN = 0
ANXIETY_MAX = 10

# Postgres names the constraint; SQLite names the columns
SAME_DAY_CONSTRAINT = "uq_entry_user_day"
SAME_DAY_COLUMNS = "entries.user_id, entries.completed_on"


@dataclass(frozen=True)
class ProgressionUpdate:
    """New progression values computed for one completion."""
    total_xp: int
    current_level: int
    current_streak: int
    longest_streak: int
    last_completion_date: date


@dataclass
class CompletionReceipt:
    """What the client is told after a completion is accepted."""
    xp_earned: int
    new_level: int
    leveled_up: bool
    new_streak: int
    anxiety_reduction: int
    newly_unlocked_achievement_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "xpEarned": self.xp_earned,
            "newLevel": self.new_level,
            "leveledUp": self.leveled_up,
            "newStreak": self.new_streak,
            "anxietyReduction": self.anxiety_reduction,
            "newlyUnlockedAchievementIds": list(self.newly_unlocked_achievement_ids),
        }


def _validate_anxiety(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise CompletionValidationError(name, f"must be an integer, got {value!r}")
    if not ANXIETY_MIN <= value <= ANXIETY_MAX:
        raise CompletionValidationError(name, f"must be between {ANXIETY_MIN} and {ANXIETY_MAX}, got {value}")


def _is_same_day_conflict(error: IntegrityError) -> bool:
    """True when the violation is the one-entry-per-day constraint, not a foreign key or other check."""
    message = str(error.orig)
    return SAME_DAY_CONSTRAINT in message or SAME_DAY_COLUMNS in message


def plan_progression(
    total_xp: int,
    current_streak: int,
    longest_streak: int,
    last_completion_date: date | None,
    xp_earned: int,
    today: date,
) -> ProgressionUpdate:
    """Apply one completion's XP and day to the stored progression values."""
    new_total = total_xp + xp_earned
    new_streak, new_longest = update_streak(last_completion_date, today, current_streak, longest_streak)
    return ProgressionUpdate(
        total_xp=new_total,
        current_level=level_for(new_total),
        current_streak=new_streak,
        longest_streak=new_longest,
        last_completion_date=today,
    )


class CompletionService:
    """Service that records daily completions and advances progression."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_entry_for_day(self, user_id: int, day: date) -> Entry | None:
        result = await self.db.execute(
            select(Entry).where(Entry.user_id == user_id, Entry.completed_on == day)
        )
        return result.scalar_one_or_none()

    async def get_history(self, user_id: int) -> list[Entry]:
        result = await self.db.execute(
            select(Entry).where(Entry.user_id == user_id).order_by(Entry.completed_at)
        )
        return list(result.scalars().all())

    async def submit_completion(
        self,
        user_id: int,
        task_id: int,
        anxiety_before: int,
        anxiety_during: int,
        used_medication: bool,
        win_note: str | None,
        now: datetime | None,
    ) -> CompletionReceipt:
        """
        Record today's completion and apply its effects.

        `now` must already be expressed in the user's time zone: its date is
        the completion day and its hour decides the early-bird bonus.

        Raises:
            CompletionValidationError: inputs out of range; nothing is written
            DuplicateCompletion: the user already completed a task on this day
            StorageFailure: any other database error while writing
        """
        # Validate
        if now is None:
            raise CompletionValidationError("now", "completion time is required")
        _validate_anxiety("anxiety_before", anxiety_before)
        _validate_anxiety("anxiety_during", anxiety_during)

        today = now.date()
        note = win_note.strip() if win_note else None

        # Once per calendar day
        if await self.get_entry_for_day(user_id, today) is not None:
            logger.info(f"Rejected duplicate completion for user {user_id} on {today}")
            raise DuplicateCompletion(user_id, today)

        xp_earned = compute_xp(used_medication, now.hour)

        # Insert the entry; the unique (user_id, completed_on) constraint
        # catches a concurrent request that passed the check above
        entry = Entry(
            user_id=user_id,
            task_id=task_id,
            completed_at=now,
            completed_on=today,
            completed_hour=now.hour,
            anxiety_before=anxiety_before,
            anxiety_during=anxiety_during,
            used_medication=used_medication,
            win_note=note or None,
            xp_earned=xp_earned,
        )
        try:
            self.db.add(entry)
            await self.db.flush()
        except IntegrityError as e:
            if not _is_same_day_conflict(e):
                raise StorageFailure("entry insert", e) from e
            await self.db.rollback()
            logger.info(f"Rejected concurrent duplicate completion for user {user_id} on {today}")
            raise DuplicateCompletion(user_id, today)
        except SQLAlchemyError as e:
            raise StorageFailure("entry insert", e) from e

        try:
            # Progression
            progression = await ProgressionService(self.db).get_or_create(user_id)
            level_before = progression.current_level
            update = plan_progression(
                total_xp=progression.total_xp,
                current_streak=progression.current_streak,
                longest_streak=progression.longest_streak,
                last_completion_date=progression.last_completion_date,
                xp_earned=xp_earned,
                today=today,
            )
            progression.total_xp = update.total_xp
            progression.current_level = update.current_level
            progression.current_streak = update.current_streak
            progression.longest_streak = update.longest_streak
            progression.last_completion_date = update.last_completion_date
            await self.db.flush()

            # Achievements, against post-update state and full history
            achievement_service = AchievementService(self.db)
            snapshot = ProgressionSnapshot(
                total_xp=update.total_xp,
                current_level=update.current_level,
                current_streak=update.current_streak,
                longest_streak=update.longest_streak,
                last_completion_date=update.last_completion_date,
            )
            history = await self.get_history(user_id)
            already_unlocked = await achievement_service.get_unlocked_ids(user_id)
            rules = await achievement_service.get_rules()
            newly_unlocked = evaluate_achievements(snapshot, history, already_unlocked, rules)
            written = await achievement_service.unlock(user_id, newly_unlocked)
        except SQLAlchemyError as e:
            raise StorageFailure("progression update", e) from e

        leveled_up = update.current_level > level_before
        logger.info(
            f"User {user_id} completed task {task_id}: +{xp_earned} XP "
            f"(total {update.total_xp}), streak {update.current_streak}"
        )
        if leveled_up:
            logger.info(f"User {user_id} leveled up: {level_before} -> {update.current_level}")

        return CompletionReceipt(
            xp_earned=xp_earned,
            new_level=update.current_level,
            leveled_up=leveled_up,
            new_streak=update.current_streak,
            anxiety_reduction=anxiety_before - anxiety_during,
            newly_unlocked_achievement_ids=written,
        )
