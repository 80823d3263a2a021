"""Daily completion endpoints."""

import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.api.auth import get_current_user
from questlog.core.config import settings
from questlog.core.database import get_db
from questlog.core.exceptions import CompletionValidationError, DuplicateCompletion, StorageFailure
from questlog.models.task import Task
from questlog.models.user import User
from questlog.services.completion import CompletionService
from questlog.services.stats import StatsService, entry_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/entries", tags=["entries"])


# =============================================================================
# SCHEMAS
# =============================================================================

class CompletionRequest(BaseModel):
    """A daily task completion as submitted by the client app."""
    task_id: int = Field(alias="taskId")
    anxiety_before: int = Field(alias="anxietyBefore")
    anxiety_during: int = Field(alias="anxietyDuring")
    used_medication: bool = Field(default=False, alias="usedMedication")
    win_note: str | None = Field(default=None, alias="winNote", max_length=2000)
    timezone: str | None = None  # IANA name, e.g. "America/Chicago"

    model_config = {"populate_by_name": True}


class CompletionReceiptResponse(BaseModel):
    xpEarned: int
    newLevel: int
    leveledUp: bool
    newStreak: int
    anxietyReduction: int
    newlyUnlockedAchievementIds: list[str]


# =============================================================================
# HELPERS
# =============================================================================

def local_now(timezone_name: str | None) -> datetime:
    """Current time in the given IANA zone, or the configured default."""
    name = timezone_name or settings.default_timezone
    try:
        zone = ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown time zone: {name}",
        )
    return datetime.now(zone)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("", response_model=CompletionReceiptResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    request: CompletionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Record today's task completion and return the XP/level/streak receipt."""
    task = await db.get(Task, request.task_id)
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task {request.task_id} not found",
        )

    service = CompletionService(db)
    try:
        receipt = await service.submit_completion(
            user_id=current_user.id,
            task_id=task.id,
            anxiety_before=request.anxiety_before,
            anxiety_during=request.anxiety_during,
            used_medication=request.used_medication,
            win_note=request.win_note,
            now=local_now(request.timezone),
        )
        await db.commit()
    except DuplicateCompletion as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except CompletionValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except StorageFailure as e:
        logger.error(f"Completion for user {current_user.id} failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")
    except SQLAlchemyError as e:
        logger.error(f"Commit of completion for user {current_user.id} failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")

    return receipt.to_dict()


@router.get("/recent")
async def get_recent_entries(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    entries = await StatsService(db).get_entries(current_user.id, limit=limit)
    return [entry_to_dict(e) for e in entries]


@router.get("/today")
async def get_today_entry(
    timezone: str | None = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any] | None:
    """Today's entry, or null if the task has not been done yet."""
    today = local_now(timezone).date()
    entry = await CompletionService(db).get_entry_for_day(current_user.id, today)
    return entry_to_dict(entry) if entry else None


@router.get("/week")
async def get_week_entries(
    timezone: str | None = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Entries in the current Monday-start week."""
    today = local_now(timezone).date()
    entries = await StatsService(db).get_week_entries(current_user.id, today)
    return [entry_to_dict(e) for e in entries]
