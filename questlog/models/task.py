from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from questlog.models.base import Base


class Task(Base):
    """A weekly task in the behavioral activation protocol."""

    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    week_number: Mapped[int] = mapped_column(Integer, index=True)
    task_name: Mapped[str] = mapped_column(String(255))
    task_description: Mapped[str] = mapped_column(Text)
    quest_description: Mapped[str] = mapped_column(Text)
    goal_days: Mapped[int] = mapped_column(Integer, default=3)  # Target completions per week

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
