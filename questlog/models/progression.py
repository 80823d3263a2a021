"""Progression and achievement models for XP, levels, streaks, and badges."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questlog.models.base import Base

if TYPE_CHECKING:
    from questlog.models.user import User


class AchievementCriterion(str, Enum):
    """Machine-checkable rule families an achievement can use."""
    TOTAL_COMPLETIONS = "total_completions"
    WEEK_COMPLETIONS = "week_completions"
    STREAK = "streak"
    ANXIETY_REDUCTION = "anxiety_reduction"
    MEDICATION_FREE = "medication_free"
    LEVEL = "level"
    EARLY_COMPLETIONS = "early_completions"
    ANXIETY_TREND = "anxiety_trend"
    COMEBACK = "comeback"


class UserProgression(Base):
    """A user's XP, level and streak. One row per user."""

    __tablename__ = "user_progression"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        index=True,
    )

    total_xp: Mapped[int] = mapped_column(Integer, default=0)
    current_level: Mapped[int] = mapped_column(Integer, default=1)  # always level_for(total_xp)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_completion_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationship
    user: Mapped["User"] = relationship("User", back_populates="progression")


class AchievementDefinition(Base):
    """Static achievement catalog - seeded once, shared by all users."""

    __tablename__ = "achievement_definitions"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)  # e.g., "first_step"
    name: Mapped[str] = mapped_column(String(255))  # e.g., "First Step"
    description: Mapped[str] = mapped_column(Text)
    badge_icon: Mapped[str] = mapped_column(String(16))  # Emoji
    unlock_criteria: Mapped[str] = mapped_column(Text)  # Display text
    # Use String to avoid PostgreSQL enum mapping issues - values validated at app layer
    criterion: Mapped[str] = mapped_column(String(50))
    threshold: Mapped[int] = mapped_column(Integer, default=1)
    sort_order: Mapped[int] = mapped_column(Integer)

    # Relationships
    user_achievements: Mapped[list["UserAchievement"]] = relationship(
        "UserAchievement",
        back_populates="achievement",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_achievement_sort_order", "sort_order"),
    )


class UserAchievement(Base):
    """An unlocked achievement. Never mutated or deleted once written."""

    __tablename__ = "user_achievements"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    achievement_id: Mapped[str] = mapped_column(
        ForeignKey("achievement_definitions.id", ondelete="CASCADE"),
        index=True,
    )
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    # Relationships
    achievement: Mapped["AchievementDefinition"] = relationship(
        "AchievementDefinition",
        back_populates="user_achievements",
    )

    __table_args__ = (
        Index("ix_user_achievement_unique", "user_id", "achievement_id", unique=True),
    )
