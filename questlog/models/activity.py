from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from questlog.models.base import Base


class ActivityAction(str, Enum):
    """What a client did in the app."""

    LOGIN = "login"
    LOGOUT = "logout"
    PAGE_VIEW = "page_view"
    TASK_STARTED = "task_started"
    TASK_COMPLETED = "task_completed"
    SETTINGS_VIEWED = "settings_viewed"
    STATS_VIEWED = "stats_viewed"
    ACHIEVEMENTS_VIEWED = "achievements_viewed"
    SESSION_START = "session_start"
    SESSION_END = "session_end"


class ActivityLog(Base):
    """One engagement event, with the device it came from. Append-only."""

    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))

    # Use String to avoid PostgreSQL enum mapping issues - values validated at app layer
    action_type: Mapped[str] = mapped_column(String(32))
    page_path: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Request origin
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    device_type: Mapped[str] = mapped_column(String(16), default="desktop")
    browser: Mapped[str] = mapped_column(String(32), default="Unknown")
    os: Mapped[str] = mapped_column(String(32), default="Unknown")

    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    session_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # seconds
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Set by the service in UTC
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_activity_user_occurred_at", "user_id", "occurred_at"),
    )
