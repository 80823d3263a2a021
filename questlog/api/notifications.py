"""Daily reminder settings and the reminder sweep."""

import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.api.auth import get_current_user, require_admin
from questlog.core.config import settings
from questlog.core.database import get_db
from questlog.models.user import User
from questlog.services.notifications import (
    NotificationService,
    NotificationSettingsUpdate,
    deliver,
    settings_to_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

TEST_TITLE = f"{settings.app_name} - Test"
TEST_CONTENT = "This is a test notification to verify the notification system is working."
REMINDER_TITLE = f"{settings.app_name} - Daily reminder"


@router.get("/settings")
async def get_settings(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Reminder settings, or the defaults if never saved."""
    row = await NotificationService(db).get_settings(current_user.id)
    return settings_to_dict(row)


@router.put("/settings")
async def update_settings(
    update: NotificationSettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    row = await NotificationService(db).update_settings(current_user.id, update)
    await db.commit()
    return settings_to_dict(row)


@router.post("/test")
async def send_test_notification(admin: User = Depends(require_admin)) -> dict[str, bool]:
    """Push a fixed message through the delivery channel."""
    return {"success": deliver(TEST_TITLE, TEST_CONTENT)}


@router.post("/check")
async def check_reminders(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Mark users whose reminder is due now. Meant to be hit by a scheduler."""
    now = datetime.now(ZoneInfo(settings.default_timezone))
    result = await NotificationService(db).check_reminders(now)
    await db.commit()
    for user_id in result["userIds"]:
        deliver(REMINDER_TITLE, f"User {user_id} has not completed today's task yet.")
    return result
