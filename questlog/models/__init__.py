from questlog.models.base import Base
from questlog.models.user import User, UserRole
from questlog.models.task import Task
from questlog.models.entry import Entry
from questlog.models.progression import (
    AchievementCriterion,
    AchievementDefinition,
    UserAchievement,
    UserProgression,
)
from questlog.models.notification import NotificationSettings
from questlog.models.activity import ActivityAction, ActivityLog

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Task",
    "Entry",
    "AchievementCriterion",
    "AchievementDefinition",
    "UserAchievement",
    "UserProgression",
    "NotificationSettings",
    "ActivityAction",
    "ActivityLog",
]
