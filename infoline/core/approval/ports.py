"""Collaborator interfaces consumed by the data entry workflow.

The workflow never talks to a database client directly. Implementations are
passed into ``TransitionGuard``/``EntryStore``: SQLAlchemy-backed ones live in
``infoline.db.repositories``, in-memory ones in the test suite.

Persistence implementations signal failure with ``PersistenceError`` or
``TransitionTimeoutError`` from ``infoline.core.approval.errors``.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple
from uuid import UUID

from infoline.core.payload import ColumnDefinition
from .records import DataEntryRecord, HistoryRecord
from .states import EntryStatus


@dataclass
class EntryQuery:
    """Filters for listing entries; every filter is optional."""
    category_id: Optional[UUID] = None
    school_id: Optional[UUID] = None
    school_ids: Optional[List[UUID]] = None  # restricts to these schools when set
    statuses: Optional[List[EntryStatus]] = None
    created_by: Optional[UUID] = None
    limit: int = 20
    offset: int = 0
    oldest_first: bool = False


class EntryRepository(Protocol):
    """Storage of data entry rows."""

    def read_entry(self, entry_id: UUID) -> Optional[DataEntryRecord]: ...

    def create_entry(self, record: DataEntryRecord) -> DataEntryRecord: ...

    def compare_and_swap(
        self,
        entry_id: UUID,
        expected_status: EntryStatus,
        changes: Dict[str, Any],
    ) -> bool:
        """Apply ``changes`` only if the stored status is still ``expected_status``.

        Returns False when no row matched (status changed or entry missing).
        """
        ...

    def list_entries(self, query: EntryQuery) -> Tuple[List[DataEntryRecord], int]: ...

    def count_by_status(
        self,
        *,
        category_id: Optional[UUID] = None,
        school_id: Optional[UUID] = None,
        school_ids: Optional[List[UUID]] = None,
    ) -> Dict[EntryStatus, int]: ...


class HistoryRepository(Protocol):
    """Append-only storage of history rows."""

    def insert_history(self, record: HistoryRecord) -> HistoryRecord:
        """Persist a new row; assigns the per-entry sequence number."""
        ...

    def list_history(self, entry_id: UUID) -> List[HistoryRecord]:
        """All rows of an entry, newest first."""
        ...


class Authorizer(Protocol):
    """Capability checks delegated to the authorization layer."""

    def has_approval_capability(self, actor_id: UUID, school_id: Optional[UUID] = None) -> bool: ...

    def approver_ids(self, school_id: UUID) -> List[UUID]: ...


class ColumnSource(Protocol):
    """Column definitions of data entry categories."""

    def columns_for(self, category_id: UUID) -> List[ColumnDefinition]: ...


class Notifier(Protocol):
    """Outbound user notifications. Delivery is best-effort."""

    def send(self, recipient_id: UUID, title: str, message: str, link: Optional[str] = None) -> None: ...
