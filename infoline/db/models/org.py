"""Administrative hierarchy: regions, sectors and schools."""

import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from infoline.core.approval.records import utcnow
from infoline.db.base import Base


class Region(Base):
    __tablename__ = "regions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime, default=utcnow)

    sectors = relationship("Sector", back_populates="region")
    schools = relationship("School", back_populates="region")


class Sector(Base):
    __tablename__ = "sectors"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    region_id = Column(Uuid, ForeignKey("regions.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime, default=utcnow)

    region = relationship("Region", back_populates="sectors")
    schools = relationship("School", back_populates="sector")


class School(Base):
    __tablename__ = "schools"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    region_id = Column(Uuid, ForeignKey("regions.id"), nullable=False, index=True)
    sector_id = Column(Uuid, ForeignKey("sectors.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime, default=utcnow)

    region = relationship("Region", back_populates="schools")
    sector = relationship("Sector", back_populates="schools")
