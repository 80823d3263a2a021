"""Achievement catalog and unlock endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.api.auth import get_current_user
from questlog.core.database import get_db
from questlog.models.user import User
from questlog.services.achievements import AchievementService

router = APIRouter(prefix="/achievements", tags=["achievements"])


class AchievementResponse(BaseModel):
    """Catalog entry."""
    id: str
    name: str
    description: str
    badge_icon: str
    unlock_criteria: str
    sort_order: int

    model_config = {"from_attributes": True}


class UnlockedAchievementResponse(BaseModel):
    """Achievement the user has unlocked."""
    achievement_id: str
    name: str
    description: str
    badge_icon: str
    unlock_criteria: str
    unlocked_at: str | None


@router.get("", response_model=list[AchievementResponse])
async def list_achievements(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Full achievement catalog in display order."""
    return await AchievementService(db).get_definitions()


@router.get("/mine", response_model=list[UnlockedAchievementResponse])
async def my_achievements(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    return await AchievementService(db).get_user_achievements(current_user.id)
