"""Database models for InfoLine."""

from infoline.db.models.org import Region, Sector, School
from infoline.db.models.category import Category, CategoryColumn
from infoline.db.models.role import Role
from infoline.db.models.user import User
from infoline.db.models.data_entry import DataEntry, DataHistory
from infoline.db.models.notification import Notification, NotificationType

__all__ = [
    "Region",
    "Sector",
    "School",
    "Category",
    "CategoryColumn",
    "Role",
    "User",
    "DataEntry",
    "DataHistory",
    "Notification",
    "NotificationType",
]
