"""Tests for CompletionService.submit_completion against in-memory SQLite.

Covers:
  - New user: XP, level, streak, reduction and first_step unlock
  - Level-up from 95 XP
  - Streak continuation and reset across days
  - Once-per-day guard, including the unique-constraint path
  - Validation errors leave no rows behind
  - Storage errors surface as StorageFailure
"""
import pytest
from unittest.mock import AsyncMock, patch

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from questlog.core.exceptions import CompletionValidationError, DuplicateCompletion, StorageFailure
from questlog.models.entry import Entry
from questlog.models.progression import UserProgression
from questlog.services.achievements import AchievementService
from questlog.services.completion import CompletionService, plan_progression
from questlog.services.progression import ProgressionService
from tests.conftest import at, make_user


async def _submit(db, user_id, now, before=6, during=2, medication=False, note=None, task_id=1):
    return await CompletionService(db).submit_completion(
        user_id=user_id,
        task_id=task_id,
        anxiety_before=before,
        anxiety_during=during,
        used_medication=medication,
        win_note=note,
        now=now,
    )


async def _entry_count(db, user_id) -> int:
    return await db.scalar(select(func.count(Entry.id)).where(Entry.user_id == user_id))


class TestPlanProgression:

    def test_level_up(self):
        update = plan_progression(
            total_xp=95,
            current_streak=1,
            longest_streak=1,
            last_completion_date=at(2026, 3, 1).date(),
            xp_earned=50,
            today=at(2026, 3, 2).date(),
        )
        assert update.total_xp == 145
        assert update.current_level == 2
        assert update.current_streak == 2
        assert update.longest_streak == 2


class TestSubmitCompletion:

    async def test_new_user_first_completion(self, db, seeded):
        user = await make_user(db)

        receipt = await _submit(db, user.id, at(2026, 3, 2, hour=9), before=6, during=2, note="  went outside ")
        await db.commit()

        assert receipt.xp_earned == 90
        assert receipt.new_level == 1
        assert receipt.leveled_up is False
        assert receipt.new_streak == 1
        assert receipt.anxiety_reduction == 4
        assert receipt.newly_unlocked_achievement_ids == ["anxiety_crusher", "first_step"]

        progression = await ProgressionService(db).get(user.id)
        assert progression.total_xp == 90
        assert progression.current_level == 1
        assert progression.current_streak == 1
        assert progression.longest_streak == 1

        entries = (await db.execute(select(Entry).where(Entry.user_id == user.id))).scalars().all()
        assert len(entries) == 1
        assert entries[0].xp_earned == 90
        assert entries[0].completed_hour == 9
        assert entries[0].win_note == "went outside"

    async def test_receipt_wire_names(self, db, seeded):
        user = await make_user(db)
        receipt = await _submit(db, user.id, at(2026, 3, 2, hour=14), before=5, during=4, medication=True)

        assert receipt.to_dict() == {
            "xpEarned": 50,
            "newLevel": 1,
            "leveledUp": False,
            "newStreak": 1,
            "anxietyReduction": 1,
            "newlyUnlockedAchievementIds": ["first_step"],
        }

    async def test_level_up_from_95(self, db, seeded):
        user = await make_user(db)
        db.add(UserProgression(
            user_id=user.id,
            total_xp=95,
            current_level=1,
            current_streak=1,
            longest_streak=1,
            last_completion_date=at(2026, 3, 1).date(),
        ))
        await db.commit()

        receipt = await _submit(db, user.id, at(2026, 3, 2, hour=15), before=5, during=4, medication=True)

        assert receipt.xp_earned == 50
        assert receipt.new_level == 2
        assert receipt.leveled_up is True
        assert receipt.new_streak == 2
        progression = await ProgressionService(db).get(user.id)
        assert progression.total_xp == 145

    async def test_streak_continues_then_resets(self, db, seeded):
        user = await make_user(db)

        await _submit(db, user.id, at(2026, 3, 2))
        receipt = await _submit(db, user.id, at(2026, 3, 3))
        assert receipt.new_streak == 2

        receipt = await _submit(db, user.id, at(2026, 3, 6))
        assert receipt.new_streak == 1
        assert "comeback_kid" in receipt.newly_unlocked_achievement_ids

        progression = await ProgressionService(db).get(user.id)
        assert progression.longest_streak == 2

    async def test_duplicate_same_day_rejected(self, db, seeded):
        user = await make_user(db)
        await _submit(db, user.id, at(2026, 3, 2, hour=9))
        await db.commit()

        with pytest.raises(DuplicateCompletion):
            await _submit(db, user.id, at(2026, 3, 2, hour=20))

        assert await _entry_count(db, user.id) == 1
        progression = await ProgressionService(db).get(user.id)
        assert progression.total_xp == 90

    async def test_concurrent_duplicate_caught_by_constraint(self, db, seeded):
        """A request that slips past the pre-check fails on the unique constraint."""
        user = await make_user(db)
        user_id = user.id  # the rollback expires loaded instances
        await _submit(db, user_id, at(2026, 3, 2, hour=9))
        await db.commit()

        with patch.object(CompletionService, "get_entry_for_day", AsyncMock(return_value=None)):
            with pytest.raises(DuplicateCompletion):
                await _submit(db, user_id, at(2026, 3, 2, hour=10))

        assert await _entry_count(db, user_id) == 1
        progression = await ProgressionService(db).get(user_id)
        assert progression.total_xp == 90

    @pytest.mark.parametrize("before,during", [(-1, 3), (11, 3), (5, 12), (5, -2)])
    async def test_out_of_range_anxiety(self, db, seeded, before, during):
        user = await make_user(db)

        with pytest.raises(CompletionValidationError):
            await _submit(db, user.id, at(2026, 3, 2), before=before, during=during)

        assert await _entry_count(db, user.id) == 0
        assert await ProgressionService(db).get(user.id) is None

    async def test_missing_now(self, db, seeded):
        user = await make_user(db)
        with pytest.raises(CompletionValidationError):
            await _submit(db, user.id, None)

    async def test_achievements_not_unlocked_twice(self, db, seeded):
        user = await make_user(db)
        first = await _submit(db, user.id, at(2026, 3, 2))
        second = await _submit(db, user.id, at(2026, 3, 3))

        assert "first_step" in first.newly_unlocked_achievement_ids
        assert "first_step" not in second.newly_unlocked_achievement_ids
        assert len(await AchievementService(db).get_unlocked_ids(user.id)) == len(
            set(first.newly_unlocked_achievement_ids) | set(second.newly_unlocked_achievement_ids)
        )

    async def test_storage_error_raised_as_storage_failure(self, db, seeded):
        user = await make_user(db)
        error = OperationalError("UPDATE user_progression", {}, Exception("disk I/O error"))

        with patch.object(ProgressionService, "get_or_create", AsyncMock(side_effect=error)):
            with pytest.raises(StorageFailure) as exc_info:
                await _submit(db, user.id, at(2026, 3, 2))

        assert exc_info.value.step == "progression update"

    async def test_missing_task_is_storage_failure_not_duplicate(self, db, seeded):
        """Only the one-entry-per-day constraint means a duplicate."""
        user = await make_user(db)

        with pytest.raises(StorageFailure) as exc_info:
            await _submit(db, user.id, at(2026, 3, 2), task_id=999)

        assert exc_info.value.step == "entry insert"
