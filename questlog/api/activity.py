"""Engagement tracking: clients record events, the therapist reads them."""

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.api.auth import get_current_user, request_origin, require_admin
from questlog.core.config import settings
from questlog.core.database import get_db
from questlog.models.activity import ActivityAction
from questlog.models.user import User
from questlog.services.activity import (
    DEFAULT_ENGAGEMENT_DAYS,
    DEFAULT_LOG_LIMIT,
    DEFAULT_TIMELINE_DAYS,
    ActivityService,
    activity_to_dict,
)
from questlog.services.auth import get_user_by_id

router = APIRouter(prefix="/activity", tags=["activity"])


class ActivityEventRequest(BaseModel):
    action_type: ActivityAction = Field(alias="actionType")
    page_path: str | None = Field(default=None, alias="pagePath", max_length=255)
    session_id: str | None = Field(default=None, alias="sessionId", max_length=64)
    session_duration: int | None = Field(default=None, alias="sessionDuration", ge=0)
    details: str | None = Field(default=None, alias="metadata")

    model_config = {"populate_by_name": True}


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


@router.post("/events", status_code=status.HTTP_201_CREATED)
async def log_event(
    event: ActivityEventRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    await ActivityService(db).log_event(
        current_user.id,
        event.action_type,
        page_path=event.page_path,
        session_id=event.session_id,
        session_duration=event.session_duration,
        details=event.details,
        **request_origin(request),
    )
    await db.commit()
    return {"success": True}


@router.get("/users/{user_id}/logs")
async def get_logs(
    user_id: int,
    limit: int = Query(DEFAULT_LOG_LIMIT, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Most recent events first."""
    await _get_user_or_404(db, user_id)
    logs = await ActivityService(db).get_logs(user_id, limit=limit)
    return [activity_to_dict(log) for log in logs]


@router.get("/users/{user_id}/engagement")
async def get_engagement(
    user_id: int,
    days: int = Query(DEFAULT_ENGAGEMENT_DAYS, ge=1, le=365),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await _get_user_or_404(db, user_id)
    now = datetime.now(ZoneInfo(settings.default_timezone))
    return await ActivityService(db).get_engagement(user_id, now, days=days)


@router.get("/users/{user_id}/timeline")
async def get_timeline(
    user_id: int,
    days: int = Query(DEFAULT_TIMELINE_DAYS, ge=1, le=90),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Daily event counts for charting."""
    await _get_user_or_404(db, user_id)
    now = datetime.now(ZoneInfo(settings.default_timezone))
    return await ActivityService(db).get_timeline(user_id, now, days=days)
