import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from infoline.core.approval.records import utcnow
from infoline.db.base import Base


class User(Base):
    """Profile of an account held by the hosted auth provider.

    ``region_id``/``sector_id``/``school_id`` bind the user to a part of the
    hierarchy; a user with none of them is global.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255))
    role_id = Column(Uuid, ForeignKey("roles.id"), nullable=False)
    region_id = Column(Uuid, ForeignKey("regions.id"), nullable=True, index=True)
    sector_id = Column(Uuid, ForeignKey("sectors.id"), nullable=True, index=True)
    school_id = Column(Uuid, ForeignKey("schools.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)

    role = relationship("Role", back_populates="users")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
