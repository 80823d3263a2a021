"""Tests for achievement evaluation and unlock bookkeeping.

Covers:
  - compute_metrics for every criterion family
  - evaluate_achievements thresholds and idempotence
  - AchievementService.unlock skipping already-unlocked ids
"""
import pytest
from datetime import date, timedelta
from types import SimpleNamespace

from questlog.services.achievements import (
    AchievementRule,
    AchievementService,
    DEFAULT_RULES,
    ProgressionSnapshot,
    compute_metrics,
    evaluate_achievements,
    rules_from_definitions,
    week_start,
)
from tests.conftest import make_user


def entry(day: date, before: int = 6, during: int = 4, medication: bool = True, hour: int = 15):
    return SimpleNamespace(
        completed_on=day,
        completed_hour=hour,
        anxiety_before=before,
        anxiety_during=during,
        used_medication=medication,
    )


def snapshot(last: date | None, streak: int = 1, level: int = 1, total_xp: int = 0):
    return ProgressionSnapshot(
        total_xp=total_xp,
        current_level=level,
        current_streak=streak,
        longest_streak=streak,
        last_completion_date=last,
    )


# Monday
MONDAY = date(2026, 3, 2)


# =============================================================================
# METRICS (pure functions, no DB)
# =============================================================================

class TestWeekStart:

    def test_monday_is_own_start(self):
        assert week_start(MONDAY) == MONDAY

    def test_sunday_belongs_to_previous_monday(self):
        assert week_start(MONDAY + timedelta(days=6)) == MONDAY


class TestComputeMetrics:

    def test_empty_history(self):
        metrics = compute_metrics(snapshot(None, streak=0), [])
        assert metrics["total_completions"] == 0
        assert metrics["anxiety_reduction"] == 0
        assert metrics["comeback"] == 0

    def test_counts(self):
        history = [
            entry(MONDAY, medication=False, hour=8),
            entry(MONDAY + timedelta(days=1), medication=True, hour=13),
            entry(MONDAY + timedelta(days=2), medication=False, hour=11),
        ]
        metrics = compute_metrics(snapshot(MONDAY + timedelta(days=2), streak=3, level=2), history)
        assert metrics["total_completions"] == 3
        assert metrics["medication_free"] == 2
        assert metrics["early_completions"] == 2
        assert metrics["week_completions"] == 3
        assert metrics["streak"] == 3
        assert metrics["level"] == 2

    def test_week_completions_only_count_current_week(self):
        history = [
            entry(MONDAY - timedelta(days=1)),  # previous Sunday
            entry(MONDAY),
            entry(MONDAY + timedelta(days=3)),
        ]
        metrics = compute_metrics(snapshot(MONDAY + timedelta(days=3)), history)
        assert metrics["week_completions"] == 2

    def test_best_single_reduction(self):
        history = [entry(MONDAY, 5, 4), entry(MONDAY + timedelta(days=1), 8, 3)]
        metrics = compute_metrics(snapshot(MONDAY + timedelta(days=1)), history)
        assert metrics["anxiety_reduction"] == 5

    def test_anxiety_trend_down(self):
        last_week = [entry(MONDAY - timedelta(days=7), during=6), entry(MONDAY - timedelta(days=6), during=5)]
        this_week = [entry(MONDAY, during=3)]
        metrics = compute_metrics(snapshot(MONDAY), last_week + this_week)
        assert metrics["anxiety_trend"] == 1

    def test_anxiety_trend_equal_is_not_down(self):
        history = [entry(MONDAY - timedelta(days=7), during=4), entry(MONDAY, during=4)]
        metrics = compute_metrics(snapshot(MONDAY), history)
        assert metrics["anxiety_trend"] == 0

    def test_anxiety_trend_needs_previous_week(self):
        history = [entry(MONDAY - timedelta(days=14), during=9), entry(MONDAY, during=1)]
        metrics = compute_metrics(snapshot(MONDAY), history)
        assert metrics["anxiety_trend"] == 0

    def test_comeback_gap(self):
        history = [entry(MONDAY), entry(MONDAY + timedelta(days=4))]
        metrics = compute_metrics(snapshot(MONDAY + timedelta(days=4)), history)
        assert metrics["comeback"] == 4


# =============================================================================
# EVALUATOR
# =============================================================================

class TestEvaluateAchievements:

    def test_first_completion_unlocks_first_step(self):
        history = [entry(MONDAY, 6, 4)]
        unlocked = evaluate_achievements(snapshot(MONDAY), history, set())
        assert unlocked == {"first_step"}

    def test_big_drop_unlocks_anxiety_crusher(self):
        history = [entry(MONDAY, 8, 4)]
        unlocked = evaluate_achievements(snapshot(MONDAY), history, set())
        assert unlocked == {"first_step", "anxiety_crusher"}

    def test_already_unlocked_not_reemitted(self):
        history = [entry(MONDAY, 8, 4)]
        unlocked = evaluate_achievements(snapshot(MONDAY), history, {"first_step", "anxiety_crusher"})
        assert unlocked == set()

    def test_idempotent(self):
        """Re-running with the first result as already-unlocked yields nothing."""
        history = [entry(MONDAY + timedelta(days=i), 7, 2, medication=False, hour=8) for i in range(7)]
        snap = snapshot(MONDAY + timedelta(days=6), streak=7, level=3)
        first = evaluate_achievements(snap, history, set())
        assert first
        assert evaluate_achievements(snap, history, first) == set()

    def test_perfect_week(self):
        history = [entry(MONDAY + timedelta(days=i), medication=False, hour=8) for i in range(7)]
        unlocked = evaluate_achievements(snapshot(MONDAY + timedelta(days=6), streak=7), history, set())
        assert {"week_warrior", "perfect_week", "streak_master", "extra_credit_king", "early_bird"} <= unlocked
        assert "no_medication_warrior" not in unlocked

    def test_level_five(self):
        unlocked = evaluate_achievements(snapshot(MONDAY, level=5), [entry(MONDAY)], {"first_step"})
        assert unlocked == {"level_5_hero"}

    def test_comeback_kid(self):
        history = [entry(MONDAY), entry(MONDAY + timedelta(days=3))]
        unlocked = evaluate_achievements(snapshot(MONDAY + timedelta(days=3)), history, {"first_step"})
        assert unlocked == {"comeback_kid"}

    def test_consecutive_days_not_a_comeback(self):
        history = [entry(MONDAY), entry(MONDAY + timedelta(days=1))]
        unlocked = evaluate_achievements(snapshot(MONDAY + timedelta(days=1), streak=2), history, {"first_step"})
        assert "comeback_kid" not in unlocked

    def test_custom_rules(self):
        rules = [AchievementRule(id="two_done", criterion="total_completions", threshold=2)]
        history = [entry(MONDAY), entry(MONDAY + timedelta(days=1))]
        assert evaluate_achievements(snapshot(MONDAY + timedelta(days=1)), history, set(), rules) == {"two_done"}

    def test_default_rules_cover_catalog(self):
        assert len(DEFAULT_RULES) == 12
        assert len({r.id for r in DEFAULT_RULES}) == 12

    def test_rules_from_orm_like_objects(self):
        rows = [SimpleNamespace(id="x", criterion="streak", threshold=3)]
        assert rules_from_definitions(rows) == [AchievementRule("x", "streak", 3)]


# =============================================================================
# ACHIEVEMENT SERVICE (in-memory SQLite)
# =============================================================================

class TestAchievementService:

    async def test_unlock_is_idempotent(self, db, seeded):
        user = await make_user(db)
        service = AchievementService(db)

        assert await service.unlock(user.id, ["first_step", "anxiety_crusher"]) == ["anxiety_crusher", "first_step"]
        assert await service.unlock(user.id, ["first_step"]) == []
        await db.commit()

        assert await service.get_unlocked_ids(user.id) == {"first_step", "anxiety_crusher"}

    async def test_user_achievements_include_catalog_details(self, db, seeded):
        user = await make_user(db)
        service = AchievementService(db)
        await service.unlock(user.id, ["first_step"])
        await db.commit()

        achievements = await service.get_user_achievements(user.id)
        assert len(achievements) == 1
        assert achievements[0]["achievement_id"] == "first_step"
        assert achievements[0]["name"] == "First Step"

    async def test_rules_loaded_from_catalog(self, db, seeded):
        rules = await AchievementService(db).get_rules()
        assert [r.id for r in rules] == [r.id for r in DEFAULT_RULES]
