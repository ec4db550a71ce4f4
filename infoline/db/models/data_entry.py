"""Data entry database models.

Stores school submissions and the append-only history of their status
changes.
"""

import uuid
from sqlalchemy import (
    Column, String, DateTime, JSON, ForeignKey, Text, Integer, Uuid,
    Index, UniqueConstraint, CheckConstraint, text,
)
from sqlalchemy.orm import relationship

from infoline.core.approval.records import utcnow
from infoline.db.base import Base

_OPEN_STATUS = text("status IN ('draft', 'submitted')")


class DataEntry(Base):
    """
    One school's values for one category.

    A (category, school) pair has at most one draft or submitted entry.
    """
    __tablename__ = "data_entries"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected')",
            name="ck_data_entries_status",
        ),
        Index(
            "uq_data_entries_open_pair",
            "category_id",
            "school_id",
            unique=True,
            postgresql_where=_OPEN_STATUS,
            sqlite_where=_OPEN_STATUS,
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id = Column(Uuid, ForeignKey("categories.id"), nullable=False, index=True)
    school_id = Column(Uuid, ForeignKey("schools.id"), nullable=False, index=True)

    # Values keyed by category column id
    data = Column(JSON, nullable=False, default=dict)

    status = Column(String(20), nullable=False, default="draft", index=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    submitted_at = Column(DateTime, nullable=True)

    # Approval tracking
    approved_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approval_comment = Column(Text, nullable=True)

    # Rejection tracking
    rejected_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow)

    category = relationship("Category")
    school = relationship("School")
    creator = relationship("User", foreign_keys=[created_by])
    approver = relationship("User", foreign_keys=[approved_by])
    rejecter = relationship("User", foreign_keys=[rejected_by])
    history = relationship("DataHistory", back_populates="entry", order_by="DataHistory.sequence")

    def __repr__(self) -> str:
        return f"<DataEntry {self.id} [{self.status}]>"


class DataHistory(Base):
    """
    Snapshot of an entry taken at each status change.

    Rows are never updated or deleted; on PostgreSQL a trigger enforces it.
    """
    __tablename__ = "data_history"
    __table_args__ = (
        UniqueConstraint("entry_id", "sequence", name="uq_data_history_entry_sequence"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    entry_id = Column(Uuid, ForeignKey("data_entries.id", ondelete="RESTRICT"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)

    data = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False)
    previous_status = Column(String(20), nullable=True)
    transition = Column(String(20), nullable=True)
    comment = Column(Text, nullable=True)

    changed_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    changed_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    entry = relationship("DataEntry", back_populates="history")
    user = relationship("User")

    def __repr__(self) -> str:
        return f"<DataHistory {self.previous_status} -> {self.status}>"
