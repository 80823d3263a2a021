"""Stats service - progress overview, client activity and data export."""

import csv
import io
from datetime import date, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from questlog.models.entry import Entry
from questlog.models.progression import AchievementDefinition, UserAchievement
from questlog.models.user import User, UserRole
from questlog.services.achievements import week_start
from questlog.services.gamification import level_progress
from questlog.services.progression import ProgressionService

EXPORT_COLUMNS = [
    "date",
    "week",
    "task",
    "anxietyBefore",
    "anxietyDuring",
    "anxietyReduction",
    "usedMedication",
    "winNote",
    "xpEarned",
]

RECENT_ACTIVITY_LIMIT = 10


def entry_to_dict(entry: Entry) -> dict[str, Any]:
    """Serialize an entry for API responses."""
    return {
        "id": entry.id,
        "taskId": entry.task_id,
        "completedAt": entry.completed_at.isoformat() if entry.completed_at else None,
        "completedOn": entry.completed_on.isoformat(),
        "anxietyBefore": entry.anxiety_before,
        "anxietyDuring": entry.anxiety_during,
        "anxietyReduction": entry.anxiety_reduction,
        "usedMedication": entry.used_medication,
        "winNote": entry.win_note,
        "xpEarned": entry.xp_earned,
    }


def user_to_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "role": user.role,
        "currentWeek": user.current_week,
        "isActive": user.is_active,
        "lastSignedIn": user.last_signed_in.isoformat() if user.last_signed_in else None,
    }


def render_csv(rows: list[dict[str, Any]]) -> str:
    """Render export rows as CSV text with a header line."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


class StatsService:
    """Read-only reporting over entries, progression and achievements."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_entries(self, user_id: int, limit: int | None = None) -> list[Entry]:
        """Entries newest first, optionally limited."""
        query = (
            select(Entry)
            .where(Entry.user_id == user_id)
            .order_by(Entry.completed_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_entries_between(self, user_id: int, start: date, end: date) -> list[Entry]:
        """Entries whose completion day falls in [start, end], oldest first."""
        result = await self.db.execute(
            select(Entry)
            .where(
                Entry.user_id == user_id,
                Entry.completed_on >= start,
                Entry.completed_on <= end,
            )
            .order_by(Entry.completed_at)
        )
        return list(result.scalars().all())

    async def get_week_entries(self, user_id: int, today: date) -> list[Entry]:
        """Entries in the Monday-start calendar week containing `today`."""
        start = week_start(today)
        return await self.get_entries_between(user_id, start, start + timedelta(days=6))

    async def get_overview(self, user_id: int) -> dict[str, Any]:
        progression = await ProgressionService(self.db).get_or_create(user_id)

        result = await self.db.execute(
            select(
                func.count(Entry.id),
                func.coalesce(func.sum(Entry.anxiety_before - Entry.anxiety_during), 0),
            ).where(Entry.user_id == user_id)
        )
        total_tasks, total_damage = result.one()

        unlocked = await self.db.scalar(
            select(func.count(UserAchievement.id)).where(UserAchievement.user_id == user_id)
        )
        total_achievements = await self.db.scalar(select(func.count(AchievementDefinition.id)))

        progress = level_progress(progression.total_xp)

        return {
            "currentLevel": progression.current_level,
            "totalXp": progression.total_xp,
            "xpForNextLevel": progress["xp_for_next_level"],
            "xpToNextLevel": progress["xp_to_next_level"],
            "levelProgress": progress["progress"],
            "currentStreak": progression.current_streak,
            "longestStreak": progression.longest_streak,
            "totalTasks": int(total_tasks or 0),
            "achievementsUnlocked": int(unlocked or 0),
            "totalAchievements": int(total_achievements or 0),
            "totalDamageDealt": int(total_damage or 0),
        }

    # =========================================================================
    # ADMIN REPORTING
    # =========================================================================

    async def list_clients(self) -> list[User]:
        result = await self.db.execute(
            select(User).where(User.role == UserRole.CLIENT.value).order_by(User.id)
        )
        return list(result.scalars().all())

    async def get_client_activity(self, user: User, today: date) -> dict[str, Any]:
        """Recent entries plus completions over the last seven days."""
        recent = await self.get_entries(user.id, limit=RECENT_ACTIVITY_LIMIT)
        last_week = await self.get_entries_between(user.id, today - timedelta(days=7), today)

        return {
            "user": user_to_dict(user),
            "recentEntries": [entry_to_dict(e) for e in recent],
            "lastLogin": user.last_signed_in.isoformat() if user.last_signed_in else None,
            "weekCompletions": len(last_week),
        }

    async def get_export_rows(self, user_id: int) -> list[dict[str, Any]]:
        """All entries, oldest first, flattened for spreadsheets."""
        result = await self.db.execute(
            select(Entry)
            .options(selectinload(Entry.task))
            .where(Entry.user_id == user_id)
            .order_by(Entry.completed_at)
        )

        rows = []
        for entry in result.scalars().all():
            rows.append({
                "date": entry.completed_on.isoformat(),
                "week": entry.task.week_number if entry.task else 0,
                "task": entry.task.task_name if entry.task else "",
                "anxietyBefore": entry.anxiety_before,
                "anxietyDuring": entry.anxiety_during,
                "anxietyReduction": entry.anxiety_reduction,
                "usedMedication": "Yes" if entry.used_medication else "No",
                "winNote": entry.win_note or "",
                "xpEarned": entry.xp_earned,
            })
        return rows

    async def export_client(self, user: User) -> dict[str, Any]:
        progression = await ProgressionService(self.db).get_or_create(user.id)
        rows = await self.get_export_rows(user.id)
        unlocked = await self.db.scalar(
            select(func.count(UserAchievement.id)).where(UserAchievement.user_id == user.id)
        )

        return {
            "user": {
                "name": user.name,
                "currentWeek": user.current_week,
                "currentLevel": progression.current_level,
                "totalXp": progression.total_xp,
                "currentStreak": progression.current_streak,
                "longestStreak": progression.longest_streak,
            },
            "entries": rows,
            "achievementsUnlocked": int(unlocked or 0),
            "totalEntries": len(rows),
        }
