from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questlog.models.base import Base

if TYPE_CHECKING:
    from questlog.models.entry import Entry
    from questlog.models.notification import NotificationSettings
    from questlog.models.progression import UserProgression


class UserRole(str, Enum):
    """Who is using the tracker."""

    CLIENT = "client"  # Person working through the protocol
    ADMIN = "admin"  # Therapist reviewing progress


class User(Base):
    """A client or therapist account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Use String to avoid PostgreSQL enum mapping issues - values validated at app layer
    role: Mapped[str] = mapped_column(String(20), default=UserRole.CLIENT.value)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Which week of the protocol the client is on
    current_week: Mapped[int] = mapped_column(Integer, default=1)

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
    last_signed_in: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    entries: Mapped[list["Entry"]] = relationship(
        "Entry",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    progression: Mapped["UserProgression | None"] = relationship(
        "UserProgression",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    notification_settings: Mapped["NotificationSettings | None"] = relationship(
        "NotificationSettings",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
