"""In-app notifications."""

import uuid
from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text, Uuid
from sqlalchemy.orm import relationship

from infoline.core.approval.records import utcnow
from infoline.db.base import Base


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default=NotificationType.INFO.value)
    is_read = Column(Boolean, nullable=False, default=False, index=True)

    # What the notification is about
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(Uuid, nullable=True)
    action_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=utcnow, index=True)

    user = relationship("User", back_populates="notifications")
