"""Data entry categories and their column definitions."""

import uuid
from sqlalchemy import Column, String, DateTime, Text, Boolean, Integer, JSON, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from infoline.core.approval.records import utcnow
from infoline.core.payload import ColumnDefinition, ColumnKind
from infoline.db.base import Base


class Category(Base):
    """A form the schools fill in, e.g. "Teaching staff"."""
    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="active")
    deadline = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    columns = relationship(
        "CategoryColumn",
        back_populates="category",
        order_by="CategoryColumn.order_index",
        cascade="all, delete-orphan",
    )


class CategoryColumn(Base):
    __tablename__ = "category_columns"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id = Column(Uuid, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)  # ColumnKind value
    is_required = Column(Boolean, default=False, nullable=False)
    options = Column(JSON, default=list)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    category = relationship("Category", back_populates="columns")

    def to_definition(self) -> ColumnDefinition:
        return ColumnDefinition(
            id=str(self.id),
            name=self.name,
            kind=ColumnKind(self.type),
            required=bool(self.is_required),
            options=list(self.options or []),
        )
