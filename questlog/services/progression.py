"""Per-user progression row access."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.models.progression import UserProgression

logger = logging.getLogger(__name__)


class ProgressionService:
    """Service for loading and lazily creating progression records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: int) -> UserProgression | None:
        result = await self.db.execute(
            select(UserProgression).where(UserProgression.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, user_id: int) -> UserProgression:
        """Get the user's progression row, creating one with defaults if missing."""
        progression = await self.get(user_id)

        if not progression:
            logger.info(f"Creating progression record for user {user_id}")
            progression = UserProgression(
                user_id=user_id,
                total_xp=0,
                current_level=1,
                current_streak=0,
                longest_streak=0,
                last_completion_date=None,
            )
            self.db.add(progression)
            await self.db.flush()

        return progression
