"""Tests for seeding the protocol tasks and the achievement catalog."""
from sqlalchemy import func, select

from questlog.models.entry import Entry
from questlog.models.progression import AchievementDefinition
from questlog.models.task import Task
from questlog.services.achievements import AchievementService
from questlog.services.completion import CompletionService
from questlog.services.seed_data import ACHIEVEMENTS, TASKS, seed_achievements, seed_tasks
from tests.conftest import at, make_user


class TestSeed:

    async def test_first_run_inserts_catalog(self, db):
        assert await seed_tasks(db) == len(TASKS)
        assert await seed_achievements(db) == len(ACHIEVEMENTS)
        await db.commit()

        assert await db.scalar(select(func.count(Task.id))) == 9
        assert await db.scalar(select(func.count(AchievementDefinition.id))) == 12

    async def test_second_run_writes_nothing(self, db, seeded):
        assert await seed_tasks(db) == 0
        assert await seed_achievements(db) == 0


class TestForceReseed:

    async def test_keeps_entries_and_unlocks(self, db, seeded):
        user = await make_user(db)
        user_id = user.id
        await CompletionService(db).submit_completion(
            user_id=user_id,
            task_id=1,
            anxiety_before=6,
            anxiety_during=2,
            used_medication=False,
            win_note=None,
            now=at(2026, 3, 2),
        )
        await db.commit()
        task_ids = set((await db.execute(select(Task.id))).scalars().all())

        assert await seed_tasks(db, force=True) == len(TASKS)
        assert await seed_achievements(db, force=True) == len(ACHIEVEMENTS)
        await db.commit()

        assert set((await db.execute(select(Task.id))).scalars().all()) == task_ids
        assert await db.scalar(select(func.count(Entry.id))) == 1
        assert await AchievementService(db).get_unlocked_ids(user_id) == {"first_step", "anxiety_crusher"}

    async def test_restores_edited_rows(self, db, seeded):
        definition = await db.get(AchievementDefinition, "first_step")
        definition.name = "Renamed"
        task = await db.scalar(select(Task).where(Task.week_number == 3))
        task.task_name = "Renamed"
        await db.commit()

        await seed_tasks(db, force=True)
        await seed_achievements(db, force=True)
        await db.commit()
        await db.refresh(definition)
        await db.refresh(task)

        assert definition.name == "First Step"
        assert task.task_name == "The Driveway Walk"
        assert await db.scalar(select(func.count(Task.id))) == 9
