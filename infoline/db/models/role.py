import uuid
from sqlalchemy import Column, String, DateTime, JSON, Boolean, Text, Uuid
from sqlalchemy.orm import relationship

from infoline.core.approval.records import utcnow
from infoline.db.base import Base


class Role(Base):
    __tablename__ = "roles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    permissions = Column(JSON, nullable=False, default=list)
    is_system = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)

    users = relationship("User", back_populates="role")
