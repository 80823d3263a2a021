from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questlog.models.base import Base

if TYPE_CHECKING:
    from questlog.models.task import Task
    from questlog.models.user import User


class Entry(Base):
    """One daily task completion with anxiety self-ratings. Append-only."""

    __tablename__ = "entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    task_id: Mapped[int] = mapped_column(ForeignKey("tasks.id"))

    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    # Calendar day and hour in the user's zone at completion time
    completed_on: Mapped[date] = mapped_column(Date)
    completed_hour: Mapped[int] = mapped_column(Integer)

    anxiety_before: Mapped[int] = mapped_column(Integer)  # 0-10 scale
    anxiety_during: Mapped[int] = mapped_column(Integer)  # 0-10 scale
    used_medication: Mapped[bool] = mapped_column(Boolean, default=False)
    win_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    xp_earned: Mapped[int] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="entries")
    task: Mapped["Task"] = relationship("Task")

    __table_args__ = (
        UniqueConstraint("user_id", "completed_on", name="uq_entry_user_day"),
        Index("ix_entry_user_completed_at", "user_id", "completed_at"),
    )

    @property
    def anxiety_reduction(self) -> int:
        return self.anxiety_before - self.anxiety_during
