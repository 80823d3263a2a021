"""Daily reminder settings and due-reminder detection.

`check_reminders` returns who is due and stamps them as notified. The caller
passes each message to `deliver`, which writes it to the application log.
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.models.entry import Entry
from questlog.models.notification import DEFAULT_REMINDER_TIME, NotificationSettings

logger = logging.getLogger(__name__)

REMINDER_TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"
REMINDER_WINDOW_MINUTES = 5
MINUTES_PER_DAY = 24 * 60


class NotificationSettingsUpdate(BaseModel):
    """Partial update; fields left out keep their stored value."""
    enabled: bool | None = None
    reminder_time: str | None = Field(
        default=None,
        pattern=REMINDER_TIME_PATTERN,
        alias="reminderTime",
    )

    model_config = {"populate_by_name": True}


def minutes_of_day(hhmm: str) -> int:
    if not re.match(REMINDER_TIME_PATTERN, hhmm):
        raise ValueError(f"Invalid time format (HH:MM): {hhmm}")
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def is_within_window(reminder_time: str, now: datetime, window: int = REMINDER_WINDOW_MINUTES) -> bool:
    """True when `now` is within `window` minutes of the reminder time, across midnight too."""
    current = now.hour * 60 + now.minute
    distance = abs(current - minutes_of_day(reminder_time))
    return min(distance, MINUTES_PER_DAY - distance) <= window


def notified_on(notified_at: datetime, zone: tzinfo) -> date:
    """Calendar day of a stored notification time in `zone`. Naive values are UTC."""
    if notified_at.tzinfo is None:
        notified_at = notified_at.replace(tzinfo=timezone.utc)
    return notified_at.astimezone(zone).date()


def settings_to_dict(row: NotificationSettings | None) -> dict[str, Any]:
    if row is None:
        return {"enabled": False, "reminderTime": DEFAULT_REMINDER_TIME, "lastNotifiedAt": None}
    return {
        "enabled": row.enabled,
        "reminderTime": row.reminder_time,
        "lastNotifiedAt": row.last_notified_at.isoformat() if row.last_notified_at else None,
    }


def deliver(title: str, content: str) -> bool:
    """Hand a notification to the delivery channel, which is the application log."""
    logger.info(f"Notification: {title} | {content}")
    return True


class NotificationService:
    """Service for reminder preferences and the periodic reminder sweep."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_settings(self, user_id: int) -> NotificationSettings | None:
        result = await self.db.execute(
            select(NotificationSettings).where(NotificationSettings.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def update_settings(self, user_id: int, update: NotificationSettingsUpdate) -> NotificationSettings:
        row = await self.get_settings(user_id)
        if row is None:
            row = NotificationSettings(
                user_id=user_id,
                enabled=False,
                reminder_time=DEFAULT_REMINDER_TIME,
            )
            self.db.add(row)

        if update.enabled is not None:
            row.enabled = update.enabled
        if update.reminder_time is not None:
            row.reminder_time = update.reminder_time

        await self.db.flush()
        await self.db.refresh(row)
        return row

    @staticmethod
    def _already_notified(notified_at: datetime, now: datetime, zone: tzinfo) -> bool:
        """Reminded earlier today, or within the last window (a window can span midnight)."""
        if notified_on(notified_at, zone) == now.date():
            return True
        if notified_at.tzinfo is None:
            notified_at = notified_at.replace(tzinfo=timezone.utc)
        return now - notified_at <= timedelta(minutes=2 * REMINDER_WINDOW_MINUTES)

    async def check_reminders(self, now: datetime) -> dict[str, Any]:
        """
        Find enabled users whose reminder is due now, who have not been
        reminded today and have not completed today's task. Marks them
        notified and returns their ids.
        """
        result = await self.db.execute(
            select(NotificationSettings).where(NotificationSettings.enabled.is_(True))
        )
        candidates = list(result.scalars().all())
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        zone = now.tzinfo
        today = now.date()

        due = []
        for row in candidates:
            if not is_within_window(row.reminder_time, now):
                continue
            if row.last_notified_at is not None and self._already_notified(row.last_notified_at, now, zone):
                continue

            completed = await self.db.scalar(
                select(Entry.id).where(Entry.user_id == row.user_id, Entry.completed_on == today)
            )
            if completed is not None:
                continue

            # Stored in UTC so every backend reads back the same instant
            row.last_notified_at = now.astimezone(timezone.utc)
            due.append(row.user_id)
            logger.info(f"Daily reminder due for user {row.user_id} ({row.reminder_time})")

        if due:
            await self.db.flush()

        return {"usersChecked": len(candidates), "notificationsSent": len(due), "userIds": due}
