"""In-memory implementations of the workflow ports for unit tests.

Each fake can be told to fail so tests can drive the retry, rollback and
timeout paths of ``TransitionGuard``.
"""

import copy
import dataclasses
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from infoline.core.approval.errors import PersistenceError
from infoline.core.approval.ports import EntryQuery
from infoline.core.approval.records import DataEntryRecord, HistoryRecord
from infoline.core.approval.states import EntryStatus
from infoline.core.payload import ColumnDefinition


class InMemoryEntryRepository:
    def __init__(self):
        self.rows: Dict[UUID, DataEntryRecord] = {}
        self.lock = threading.Lock()
        self.read_count = 0
        self.cas_calls: List[Tuple[UUID, EntryStatus, Dict[str, Any]]] = []
        self.fail_cas = 0  # number of compare_and_swap calls that raise
        self.fail_cas_after_write = 0  # calls that apply the changes, then raise
        self.after_read: Optional[Callable[[], None]] = None

    def add(self, record: DataEntryRecord) -> DataEntryRecord:
        self.rows[record.id] = copy.deepcopy(record)
        return record

    def read_entry(self, entry_id: UUID) -> Optional[DataEntryRecord]:
        with self.lock:
            self.read_count += 1
            row = copy.deepcopy(self.rows.get(entry_id))
        if self.after_read is not None:
            self.after_read()
        return row

    def create_entry(self, record: DataEntryRecord) -> DataEntryRecord:
        return self.add(record)

    def compare_and_swap(self, entry_id: UUID, expected_status: EntryStatus, changes: Dict[str, Any]) -> bool:
        with self.lock:
            self.cas_calls.append((entry_id, expected_status, dict(changes)))
            if self.fail_cas:
                self.fail_cas -= 1
                raise PersistenceError("connection reset")
            row = self.rows.get(entry_id)
            if row is None or row.status != expected_status:
                return False
            for key, value in changes.items():
                setattr(row, key, copy.deepcopy(value))
            if self.fail_cas_after_write:
                self.fail_cas_after_write -= 1
                raise PersistenceError("connection reset after commit")
            return True

    def list_entries(self, query: EntryQuery) -> Tuple[List[DataEntryRecord], int]:
        rows = list(self.rows.values())
        if query.category_id:
            rows = [r for r in rows if r.category_id == query.category_id]
        if query.school_id:
            rows = [r for r in rows if r.school_id == query.school_id]
        if query.school_ids is not None:
            rows = [r for r in rows if r.school_id in query.school_ids]
        if query.statuses:
            rows = [r for r in rows if r.status in query.statuses]
        if query.created_by:
            rows = [r for r in rows if r.created_by == query.created_by]

        if query.oldest_first:
            rows.sort(key=lambda r: (r.submitted_at or datetime.min, r.created_at or datetime.min))
        else:
            rows.sort(key=lambda r: r.created_at or datetime.min, reverse=True)
        page = rows[query.offset:query.offset + query.limit]
        return [copy.deepcopy(r) for r in page], len(rows)

    def count_by_status(self, *, category_id=None, school_id=None, school_ids=None) -> Dict[EntryStatus, int]:
        counts: Dict[EntryStatus, int] = {}
        for row in self.rows.values():
            if school_ids is not None and row.school_id not in school_ids:
                continue
            if category_id and row.category_id != category_id:
                continue
            if school_id and row.school_id != school_id:
                continue
            counts[row.status] = counts.get(row.status, 0) + 1
        return counts


class InMemoryHistoryRepository:
    def __init__(self):
        self.rows: List[HistoryRecord] = []
        self.lock = threading.Lock()
        self.fail_inserts = 0
        self.failure: Exception = PersistenceError("history table unavailable")

    def insert_history(self, record: HistoryRecord) -> HistoryRecord:
        with self.lock:
            if self.fail_inserts:
                self.fail_inserts -= 1
                raise self.failure
            sequence = sum(1 for r in self.rows if r.entry_id == record.entry_id) + 1
            stored = dataclasses.replace(record, sequence=sequence)
            self.rows.append(stored)
            return stored

    def list_history(self, entry_id: UUID) -> List[HistoryRecord]:
        rows = [r for r in self.rows if r.entry_id == entry_id]
        return sorted(rows, key=lambda r: r.sequence, reverse=True)


class StaticAuthorizer:
    """Grants approval capability to a fixed set of users."""

    def __init__(self, approvers=()):
        self.approvers = list(approvers)

    def has_approval_capability(self, actor_id: UUID, school_id: Optional[UUID] = None) -> bool:
        return actor_id in self.approvers

    def approver_ids(self, school_id: UUID) -> List[UUID]:
        return list(self.approvers)


class StaticColumnSource:
    def __init__(self, columns: Optional[Dict[UUID, List[ColumnDefinition]]] = None):
        self.columns = columns or {}

    def columns_for(self, category_id: UUID) -> List[ColumnDefinition]:
        return list(self.columns.get(category_id, []))


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.sent: List[Tuple[UUID, str, str, Optional[str]]] = []
        self.fail = fail

    def send(self, recipient_id: UUID, title: str, message: str, link: Optional[str] = None) -> None:
        if self.fail:
            raise RuntimeError("notification backend down")
        self.sent.append((recipient_id, title, message, link))


class StepClock:
    """Returns a later time on every call."""

    def __init__(self, start: datetime = datetime(2026, 1, 15, 9, 0, 0), step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value
