"""Coaching text endpoints backed by Claude Haiku."""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.api.auth import get_current_user
from questlog.api.entries import local_now
from questlog.core.database import get_db
from questlog.models.user import User
from questlog.services import coach_service
from questlog.services.coach import CompletionContext
from questlog.services.completion import CompletionService
from questlog.services.progression import ProgressionService
from questlog.services.stats import StatsService

router = APIRouter(prefix="/coach", tags=["coach"])

INSIGHT_ENTRY_LIMIT = 14
TIP_ENTRY_LIMIT = 10


class CompletionMessageRequest(BaseModel):
    task_name: str = Field(alias="taskName")
    anxiety_before: int = Field(alias="anxietyBefore", ge=0, le=10)
    anxiety_during: int = Field(alias="anxietyDuring", ge=0, le=10)
    used_medication: bool = Field(default=False, alias="usedMedication")
    current_streak: int = Field(default=0, alias="currentStreak", ge=0)
    win_note: str | None = Field(default=None, alias="winNote")

    model_config = {"populate_by_name": True}


class CompletionMessageResponse(BaseModel):
    message: str


@router.post("/completion-message", response_model=CompletionMessageResponse)
async def completion_message(
    request: CompletionMessageRequest,
    current_user: User = Depends(get_current_user),
):
    """Short encouragement after a completion."""
    context = CompletionContext(
        task_name=request.task_name,
        anxiety_before=request.anxiety_before,
        anxiety_during=request.anxiety_during,
        used_medication=request.used_medication,
        current_streak=request.current_streak,
        win_note=request.win_note,
    )
    message = await coach_service.completion_message(context, name=current_user.name)
    return CompletionMessageResponse(message=message)


@router.get("/insights")
async def weekly_insights(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    entries = await StatsService(db).get_entries(current_user.id, limit=INSIGHT_ENTRY_LIMIT)
    return await coach_service.weekly_insights(entries, name=current_user.name)


@router.get("/greeting")
async def daily_greeting(
    tz: str | None = Query(default=None, alias="timezone"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Greeting for the home screen, with streak-at-risk and done-today flags."""
    now = local_now(tz)
    today = now.date()
    progression = await ProgressionService(db).get(current_user.id)
    completed_today = await CompletionService(db).get_entry_for_day(current_user.id, today) is not None
    week_entries = await StatsService(db).get_week_entries(current_user.id, today)
    return await coach_service.greeting(
        progression,
        completed_today=completed_today,
        week_count=len(week_entries),
        hour=now.hour,
        name=current_user.name,
    )


@router.get("/tip")
async def tip_of_the_day(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    entries = await StatsService(db).get_entries(current_user.id, limit=TIP_ENTRY_LIMIT)
    progression = await ProgressionService(db).get(current_user.id)
    return await coach_service.tip(
        entries,
        current_streak=progression.current_streak if progression else 0,
        name=current_user.name,
    )
