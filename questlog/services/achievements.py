"""Achievement evaluation and unlock bookkeeping."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.models.progression import AchievementCriterion, AchievementDefinition, UserAchievement
from questlog.services.gamification import EARLY_BIRD_CUTOFF_HOUR, days_between
from questlog.services.seed_data import get_achievement_definitions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressionSnapshot:
    """Progression state after the latest completion was applied."""
    total_xp: int
    current_level: int
    current_streak: int
    longest_streak: int
    last_completion_date: date | None


@dataclass(frozen=True)
class AchievementRule:
    """The machine-checkable part of an achievement definition."""
    id: str
    criterion: str
    threshold: int


def rules_from_definitions(definitions: Iterable[Any]) -> list[AchievementRule]:
    """Build rules from catalog rows (ORM objects or dicts)."""
    rules = []
    for definition in definitions:
        if isinstance(definition, dict):
            rules.append(AchievementRule(
                id=definition["id"],
                criterion=definition["criterion"],
                threshold=definition["threshold"],
            ))
        else:
            rules.append(AchievementRule(
                id=definition.id,
                criterion=definition.criterion,
                threshold=definition.threshold,
            ))
    return rules


DEFAULT_RULES = rules_from_definitions(get_achievement_definitions())


# =============================================================================
# METRICS (pure functions, no DB)
# =============================================================================

def week_start(day: date) -> date:
    """Monday of the calendar week containing `day`."""
    return day - timedelta(days=day.weekday())


def _mean_anxiety_during(entries: list[Any]) -> float:
    return sum(e.anxiety_during for e in entries) / len(entries)


def compute_metrics(snapshot: ProgressionSnapshot, history: list[Any]) -> dict[str, int]:
    """
    Gather every value an achievement criterion is compared against.

    `history` holds completion entries (anything with completed_on,
    completed_hour, anxiety_before, anxiety_during and used_medication),
    including the one just written.
    """
    metrics = {
        AchievementCriterion.STREAK.value: snapshot.current_streak,
        AchievementCriterion.LEVEL.value: snapshot.current_level,
        AchievementCriterion.TOTAL_COMPLETIONS.value: len(history),
        AchievementCriterion.MEDICATION_FREE.value: sum(1 for e in history if not e.used_medication),
        AchievementCriterion.EARLY_COMPLETIONS.value: sum(
            1 for e in history if e.completed_hour < EARLY_BIRD_CUTOFF_HOUR
        ),
        AchievementCriterion.ANXIETY_REDUCTION.value: max(
            (e.anxiety_before - e.anxiety_during for e in history), default=0
        ),
        AchievementCriterion.WEEK_COMPLETIONS.value: 0,
        AchievementCriterion.ANXIETY_TREND.value: 0,
        AchievementCriterion.COMEBACK.value: 0,
    }

    if not history:
        return metrics

    days = sorted({e.completed_on for e in history})
    today = snapshot.last_completion_date or days[-1]

    # Calendar-week metrics (Monday start)
    this_week = week_start(today)
    last_week = this_week - timedelta(days=7)
    this_week_entries = [e for e in history if week_start(e.completed_on) == this_week]
    last_week_entries = [e for e in history if week_start(e.completed_on) == last_week]

    metrics[AchievementCriterion.WEEK_COMPLETIONS.value] = len(
        {e.completed_on for e in this_week_entries}
    )

    if this_week_entries and last_week_entries:
        trending_down = _mean_anxiety_during(this_week_entries) < _mean_anxiety_during(last_week_entries)
        metrics[AchievementCriterion.ANXIETY_TREND.value] = int(trending_down)

    # Gap between the latest completion day and the one before it
    if len(days) >= 2:
        metrics[AchievementCriterion.COMEBACK.value] = days_between(days[-2], days[-1])

    return metrics


def evaluate_achievements(
    snapshot: ProgressionSnapshot,
    history: list[Any],
    already_unlocked: Iterable[str],
    rules: Iterable[AchievementRule] | None = None,
) -> set[str]:
    """
    Return ids of achievements whose criterion is met and that are not
    already unlocked. Already-unlocked ids are skipped outright.
    """
    unlocked = set(already_unlocked)
    pending = [r for r in (DEFAULT_RULES if rules is None else rules) if r.id not in unlocked]
    if not pending:
        return set()

    metrics = compute_metrics(snapshot, history)
    return {
        rule.id
        for rule in pending
        if metrics.get(rule.criterion, 0) >= rule.threshold
    }


# =============================================================================
# ACHIEVEMENT SERVICE
# =============================================================================

class AchievementService:
    """Service for reading the catalog and recording unlocks."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_definitions(self) -> list[AchievementDefinition]:
        result = await self.db.execute(
            select(AchievementDefinition).order_by(AchievementDefinition.sort_order)
        )
        return list(result.scalars().all())

    async def get_rules(self) -> list[AchievementRule]:
        return rules_from_definitions(await self.get_definitions())

    async def get_unlocked_ids(self, user_id: int) -> set[str]:
        result = await self.db.execute(
            select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
        )
        return set(result.scalars().all())

    async def unlock(self, user_id: int, achievement_ids: Iterable[str]) -> list[str]:
        """
        Record unlocks. Ids the user already has are skipped, so calling this
        twice with the same ids is a no-op. Returns the ids actually written.
        """
        existing = await self.get_unlocked_ids(user_id)
        written = []
        for achievement_id in sorted(set(achievement_ids) - existing):
            self.db.add(UserAchievement(user_id=user_id, achievement_id=achievement_id))
            written.append(achievement_id)

        if written:
            await self.db.flush()
            logger.info(f"User {user_id} unlocked achievements: {', '.join(written)}")
        return written

    async def get_user_achievements(self, user_id: int) -> list[dict[str, Any]]:
        """Unlocked achievements with catalog details, newest first."""
        result = await self.db.execute(
            select(UserAchievement, AchievementDefinition)
            .join(AchievementDefinition, UserAchievement.achievement_id == AchievementDefinition.id)
            .where(UserAchievement.user_id == user_id)
            .order_by(UserAchievement.unlocked_at.desc(), AchievementDefinition.sort_order)
        )

        return [
            {
                "achievement_id": definition.id,
                "name": definition.name,
                "description": definition.description,
                "badge_icon": definition.badge_icon,
                "unlock_criteria": definition.unlock_criteria,
                "unlocked_at": unlock.unlocked_at.isoformat() if unlock.unlocked_at else None,
            }
            for unlock, definition in result.all()
        ]
