from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.api.auth import get_current_user
from questlog.core.database import get_db
from questlog.models.user import User
from questlog.services.stats import StatsService

router = APIRouter(prefix="/stats", tags=["stats"])


class OverviewResponse(BaseModel):
    """Progress overview for the stats screen."""
    currentLevel: int
    totalXp: int
    xpForNextLevel: int
    xpToNextLevel: int
    levelProgress: float
    currentStreak: int
    longestStreak: int
    totalTasks: int
    achievementsUnlocked: int
    totalAchievements: int
    totalDamageDealt: int


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    overview = await StatsService(db).get_overview(current_user.id)
    await db.commit()
    return overview
