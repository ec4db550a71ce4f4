"""SQLAlchemy implementations of the workflow's persistence ports.

Every write commits on its own, like a call to the hosted database's REST
API would: a status change and its history row are two transactions, tied
together by ``TransitionGuard``'s compensating rollback.
"""

import dataclasses
import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from infoline.core.approval.errors import (
    InvalidTransitionError,
    PersistenceError,
    TransitionTimeoutError,
)
from infoline.core.approval.ports import EntryQuery
from infoline.core.approval.records import DataEntryRecord, HistoryRecord
from infoline.core.approval.states import EntryStatus, EntryTransition
from infoline.core.payload import ColumnDefinition
from infoline.core.rbac import has_permission, scope_covers
from infoline.db.models import CategoryColumn, DataEntry, DataHistory, School, User

logger = logging.getLogger(__name__)

APPROVE_PERMISSION = "data_entries:approve"

# PostgreSQL "query_canceled", raised when statement_timeout fires
_QUERY_CANCELED = "57014"


@contextmanager
def store_errors(db: Session, action: str):
    """Translate SQLAlchemy failures into workflow errors, rolling back the session."""
    try:
        yield
    except PoolTimeoutError as e:
        db.rollback()
        raise TransitionTimeoutError(f"{action}: timed out waiting for a connection") from e
    except OperationalError as e:
        db.rollback()
        if getattr(e.orig, "pgcode", None) == _QUERY_CANCELED:
            raise TransitionTimeoutError(f"{action}: statement timed out") from e
        raise PersistenceError(f"{action}: database unavailable") from e
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"{action} failed: {e.__class__.__name__}") from e


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def entry_to_record(row: DataEntry) -> DataEntryRecord:
    return DataEntryRecord(
        id=row.id,
        category_id=row.category_id,
        school_id=row.school_id,
        created_by=row.created_by,
        data=dict(row.data or {}),
        status=EntryStatus(row.status),
        submitted_at=row.submitted_at,
        approved_by=row.approved_by,
        approved_at=row.approved_at,
        approval_comment=row.approval_comment,
        rejected_by=row.rejected_by,
        rejected_at=row.rejected_at,
        rejection_reason=row.rejection_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def history_to_record(row: DataHistory) -> HistoryRecord:
    return HistoryRecord(
        id=row.id,
        entry_id=row.entry_id,
        changed_by=row.changed_by,
        data=dict(row.data or {}),
        status=EntryStatus(row.status),
        changed_at=row.changed_at,
        previous_status=EntryStatus(row.previous_status) if row.previous_status else None,
        transition=EntryTransition(row.transition) if row.transition else None,
        comment=row.comment,
        sequence=row.sequence,
    )


class SqlEntryRepository:
    """Data entries stored in the ``data_entries`` table."""

    def __init__(self, db: Session):
        self.db = db

    def read_entry(self, entry_id: UUID) -> Optional[DataEntryRecord]:
        with store_errors(self.db, f"Reading entry {entry_id}"):
            row = self.db.get(DataEntry, entry_id, populate_existing=True)
            return entry_to_record(row) if row else None

    def create_entry(self, record: DataEntryRecord) -> DataEntryRecord:
        row = DataEntry(
            id=record.id,
            category_id=record.category_id,
            school_id=record.school_id,
            created_by=record.created_by,
            data=record.data,
            status=record.status.value,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        try:
            with store_errors(self.db, "Creating entry"):
                self.db.add(row)
                self.db.commit()
        except PersistenceError as e:
            # Partial unique index on open (category, school) pairs
            if isinstance(e.__cause__, IntegrityError):
                raise InvalidTransitionError(
                    "This school already has an open entry for the category",
                    actor_id=record.created_by,
                ) from e.__cause__
            raise
        return record

    def compare_and_swap(self, entry_id: UUID, expected_status: EntryStatus, changes: Dict[str, Any]) -> bool:
        values = {key: _column_value(value) for key, value in changes.items()}
        stmt = (
            update(DataEntry)
            .where(DataEntry.id == entry_id, DataEntry.status == expected_status.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        with store_errors(self.db, f"Updating entry {entry_id}"):
            result = self.db.execute(stmt)
            self.db.commit()
        return result.rowcount == 1

    def list_entries(self, query: EntryQuery) -> Tuple[List[DataEntryRecord], int]:
        with store_errors(self.db, "Listing entries"):
            q = self.db.query(DataEntry)
            if query.category_id:
                q = q.filter(DataEntry.category_id == query.category_id)
            if query.school_id:
                q = q.filter(DataEntry.school_id == query.school_id)
            if query.school_ids is not None:
                q = q.filter(DataEntry.school_id.in_(query.school_ids))
            if query.statuses:
                q = q.filter(DataEntry.status.in_([s.value for s in query.statuses]))
            if query.created_by:
                q = q.filter(DataEntry.created_by == query.created_by)

            total = q.count()
            if query.oldest_first:
                q = q.order_by(DataEntry.submitted_at.asc(), DataEntry.created_at.asc())
            else:
                q = q.order_by(DataEntry.created_at.desc())
            rows = q.offset(query.offset).limit(query.limit).all()

        return [entry_to_record(row) for row in rows], total

    def count_by_status(
        self,
        *,
        category_id: Optional[UUID] = None,
        school_id: Optional[UUID] = None,
        school_ids: Optional[List[UUID]] = None,
    ) -> Dict[EntryStatus, int]:
        with store_errors(self.db, "Counting entries"):
            q = self.db.query(DataEntry.status, func.count(DataEntry.id))
            if category_id:
                q = q.filter(DataEntry.category_id == category_id)
            if school_id:
                q = q.filter(DataEntry.school_id == school_id)
            if school_ids is not None:
                q = q.filter(DataEntry.school_id.in_(school_ids))
            rows = q.group_by(DataEntry.status).all()
        return {EntryStatus(status): count for status, count in rows}


class SqlHistoryRepository:
    """Append-only ``data_history`` rows."""

    def __init__(self, db: Session):
        self.db = db

    def insert_history(self, record: HistoryRecord) -> HistoryRecord:
        with store_errors(self.db, f"Recording history for entry {record.entry_id}"):
            last = (
                self.db.query(func.max(DataHistory.sequence))
                .filter(DataHistory.entry_id == record.entry_id)
                .scalar()
            )
            record = dataclasses.replace(record, sequence=(last or 0) + 1)
            self.db.add(DataHistory(
                id=record.id,
                entry_id=record.entry_id,
                sequence=record.sequence,
                data=record.data,
                status=record.status.value,
                previous_status=record.previous_status.value if record.previous_status else None,
                transition=record.transition.value if record.transition else None,
                comment=record.comment,
                changed_by=record.changed_by,
                changed_at=record.changed_at,
            ))
            self.db.commit()
        return record

    def list_history(self, entry_id: UUID) -> List[HistoryRecord]:
        with store_errors(self.db, f"Reading history of entry {entry_id}"):
            rows = (
                self.db.query(DataHistory)
                .filter(DataHistory.entry_id == entry_id)
                .order_by(DataHistory.sequence.desc())
                .all()
            )
        return [history_to_record(row) for row in rows]


class RoleAuthorizer:
    """Approval capability from the user's role permissions and scope."""

    def __init__(self, db: Session):
        self.db = db

    def has_approval_capability(self, actor_id: UUID, school_id: Optional[UUID] = None) -> bool:
        with store_errors(self.db, f"Checking permissions of {actor_id}"):
            user = self.db.get(User, actor_id)
            if not has_permission(user, APPROVE_PERMISSION):
                return False
            if school_id is None:
                return True
            school = self.db.get(School, school_id)
            if school is None:
                return False
            return scope_covers(user, school_id=school.id, sector_id=school.sector_id, region_id=school.region_id)

    def approver_ids(self, school_id: UUID) -> List[UUID]:
        with store_errors(self.db, f"Listing approvers of school {school_id}"):
            school = self.db.get(School, school_id)
            if school is None:
                return []
            users = self.db.query(User).filter(User.is_active.is_(True)).all()
            return [
                user.id for user in users
                if has_permission(user, APPROVE_PERMISSION)
                and scope_covers(user, school_id=school.id, sector_id=school.sector_id, region_id=school.region_id)
            ]


class SqlColumnSource:
    """Column definitions from ``category_columns``."""

    def __init__(self, db: Session):
        self.db = db

    def columns_for(self, category_id: UUID) -> List[ColumnDefinition]:
        with store_errors(self.db, f"Reading columns of category {category_id}"):
            rows = (
                self.db.query(CategoryColumn)
                .filter(CategoryColumn.category_id == category_id)
                .order_by(CategoryColumn.order_index)
                .all()
            )
        return [row.to_definition() for row in rows]
