"""Seed data - protocol tasks and the achievement catalog."""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.models.progression import AchievementCriterion, AchievementDefinition
from questlog.models.task import Task

logger = logging.getLogger(__name__)


DOORWAY_STAND = {
    "task_name": "The Doorway Stand",
    "task_description": "Stand in open front door for 2 minutes, look outside",
    "quest_description": (
        "Stand at the threshold between inside and outside. Feel the air. Observe the world. "
        "You're training your brain that doorways are safe."
    ),
}

DRIVEWAY_WALK = {
    "task_name": "The Driveway Walk",
    "task_description": "Walk to the end of the driveway and back",
    "quest_description": (
        "Venture beyond the door. Your driveway is your training ground. Each step is progress."
    ),
}

VIDEO_CAPTURE = {
    "task_name": "The Video Capture",
    "task_description": "Record a 15-30 second video outside (can be of anything)",
    "quest_description": (
        "Document your outdoor experience. This is content creation training - "
        "your TikTok skills are leveling up."
    ),
}

BOARD_TOUCH = {
    "task_name": "The Board Touch",
    "task_description": "Go outside and touch/hold/ride skateboard (any amount)",
    "quest_description": (
        "Reconnect with your board. Even touching it counts. You're remembering who you are."
    ),
}

YOUR_CHOICE = {
    "task_name": "Your Choice",
    "task_description": (
        "Choose from menu: skateboard, walk around block, sit outside 10 min, "
        "record TikTok, or other outdoor activity"
    ),
    "quest_description": (
        "You've leveled up enough to choose your own quests. "
        "What outdoor activity calls to you today?"
    ),
}

# Two weeks per exposure step, then free choice
TASKS: list[dict[str, Any]] = [
    {"week_number": 1, "goal_days": 3, **DOORWAY_STAND},
    {"week_number": 2, "goal_days": 3, **DOORWAY_STAND},
    {"week_number": 3, "goal_days": 3, **DRIVEWAY_WALK},
    {"week_number": 4, "goal_days": 3, **DRIVEWAY_WALK},
    {"week_number": 5, "goal_days": 3, **VIDEO_CAPTURE},
    {"week_number": 6, "goal_days": 3, **VIDEO_CAPTURE},
    {"week_number": 7, "goal_days": 3, **BOARD_TOUCH},
    {"week_number": 8, "goal_days": 3, **BOARD_TOUCH},
    {"week_number": 9, "goal_days": 4, **YOUR_CHOICE},
]


ACHIEVEMENTS: list[dict[str, Any]] = [
    {
        "id": "first_step",
        "name": "First Step",
        "description": "Complete your first task ever",
        "badge_icon": "🎯",
        "unlock_criteria": "Complete 1 task",
        "criterion": AchievementCriterion.TOTAL_COMPLETIONS,
        "threshold": 1,
    },
    {
        "id": "week_warrior",
        "name": "Week Warrior",
        "description": "Complete 3+ days in a single week",
        "badge_icon": "⚔️",
        "unlock_criteria": "Complete 3+ days in one week",
        "criterion": AchievementCriterion.WEEK_COMPLETIONS,
        "threshold": 3,
    },
    {
        "id": "perfect_week",
        "name": "Perfect Week",
        "description": "Complete all 7 days in a week",
        "badge_icon": "💎",
        "unlock_criteria": "Complete all 7 days in one week",
        "criterion": AchievementCriterion.WEEK_COMPLETIONS,
        "threshold": 7,
    },
    {
        "id": "streak_master",
        "name": "Streak Master",
        "description": "Maintain a 7-day streak",
        "badge_icon": "🔥",
        "unlock_criteria": "Achieve 7-day streak",
        "criterion": AchievementCriterion.STREAK,
        "threshold": 7,
    },
    {
        "id": "anxiety_crusher",
        "name": "Anxiety Crusher",
        "description": "Anxiety dropped 3+ points during a task",
        "badge_icon": "💪",
        "unlock_criteria": "Reduce anxiety by 3+ points in one task",
        "criterion": AchievementCriterion.ANXIETY_REDUCTION,
        "threshold": 3,
    },
    {
        "id": "extra_credit_king",
        "name": "Extra Credit King",
        "description": "Earn 5+ medication-free bonus completions",
        "badge_icon": "👑",
        "unlock_criteria": "Complete 5 tasks without medication",
        "criterion": AchievementCriterion.MEDICATION_FREE,
        "threshold": 5,
    },
    {
        "id": "level_5_hero",
        "name": "Level 5 Hero",
        "description": "Reach Level 5",
        "badge_icon": "🌟",
        "unlock_criteria": "Reach Level 5",
        "criterion": AchievementCriterion.LEVEL,
        "threshold": 5,
    },
    {
        "id": "outdoor_champion",
        "name": "Outdoor Champion",
        "description": "Complete 30 total tasks",
        "badge_icon": "🏆",
        "unlock_criteria": "Complete 30 tasks total",
        "criterion": AchievementCriterion.TOTAL_COMPLETIONS,
        "threshold": 30,
    },
    {
        "id": "no_medication_warrior",
        "name": "No Medication Warrior",
        "description": "Complete 10 tasks without medication",
        "badge_icon": "🛡️",
        "unlock_criteria": "Complete 10 tasks without medication",
        "criterion": AchievementCriterion.MEDICATION_FREE,
        "threshold": 10,
    },
    {
        "id": "early_bird",
        "name": "Early Bird",
        "description": "Complete 5 tasks before noon",
        "badge_icon": "🌅",
        "unlock_criteria": "Complete 5 tasks before 12:00 PM",
        "criterion": AchievementCriterion.EARLY_COMPLETIONS,
        "threshold": 5,
    },
    {
        "id": "boss_defeated",
        "name": "Boss Defeated",
        "description": "Complete a week with anxiety trending down",
        "badge_icon": "⚡",
        "unlock_criteria": "Average anxiety during tasks lower than the week before",
        "criterion": AchievementCriterion.ANXIETY_TREND,
        "threshold": 1,
    },
    {
        "id": "comeback_kid",
        "name": "Comeback Kid",
        "description": "Return after a break",
        "badge_icon": "🎮",
        "unlock_criteria": "Complete a task 2+ days after your previous one",
        "criterion": AchievementCriterion.COMEBACK,
        "threshold": 2,
    },
]


def get_achievement_definitions() -> list[dict[str, Any]]:
    """Catalog rows ready for insertion, with sort order and plain-string criteria."""
    return [
        {**achievement, "criterion": achievement["criterion"].value, "sort_order": index}
        for index, achievement in enumerate(ACHIEVEMENTS, start=1)
    ]


async def seed_tasks(db: AsyncSession, force: bool = False) -> int:
    """
    Insert protocol tasks. Returns the number written (0 if already seeded).

    With `force`, existing rows are updated in place by week number so
    entries keep pointing at the same task ids.
    """
    existing = {
        task.week_number: task
        for task in (await db.execute(select(Task))).scalars().all()
    }

    if existing and not force:
        logger.info(f"Tasks already seeded ({len(existing)} rows)")
        return 0

    for task_data in TASKS:
        task = existing.get(task_data["week_number"])
        if task is None:
            db.add(Task(**task_data))
            continue
        for field, value in task_data.items():
            setattr(task, field, value)

    await db.flush()
    if existing:
        logger.info(f"Refreshed {len(existing)} existing tasks")
    return len(TASKS)


async def seed_achievements(db: AsyncSession, force: bool = False) -> int:
    """
    Insert achievement definitions. Returns the number written (0 if already seeded).

    With `force`, definitions are merged by id, so users' unlocks survive.
    """
    result = await db.execute(select(func.count(AchievementDefinition.id)))
    existing = result.scalar() or 0

    if existing and not force:
        logger.info(f"Achievements already seeded ({existing} definitions)")
        return 0

    definitions = get_achievement_definitions()
    for definition in definitions:
        await db.merge(AchievementDefinition(**definition))
    await db.flush()
    if existing:
        logger.info(f"Refreshed {existing} existing achievement definitions")
    return len(definitions)
