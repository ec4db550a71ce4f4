"""Audit trail of data entry transitions.

History rows are append-only: ``AuditRecorder`` only ever inserts, and the
PostgreSQL schema rejects UPDATE and DELETE on ``data_history``.
"""

import copy
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from .ports import HistoryRepository
from .records import HistoryRecord, utcnow
from .states import EntryStatus, EntryTransition


class AuditRecorder:
    """Appends and reads history snapshots of data entries."""

    def __init__(self, history: HistoryRepository, *, clock: Callable[[], datetime] = utcnow):
        self.history_store = history
        self.clock = clock

    def record(
        self,
        entry_id: UUID,
        actor_id: UUID,
        payload_snapshot: Dict[str, Any],
        resulting_status: EntryStatus,
        *,
        previous_status: Optional[EntryStatus] = None,
        transition: Optional[EntryTransition] = None,
        comment: Optional[str] = None,
        changed_at: Optional[datetime] = None,
    ) -> HistoryRecord:
        """
        Append a history row for an entry.

        Raises:
            PersistenceError: If the row could not be stored
        """
        record = HistoryRecord(
            id=uuid.uuid4(),
            entry_id=entry_id,
            changed_by=actor_id,
            data=copy.deepcopy(payload_snapshot),
            status=resulting_status,
            changed_at=changed_at or self.clock(),
            previous_status=previous_status,
            transition=transition,
            comment=comment,
        )
        return self.history_store.insert_history(record)

    def history(self, entry_id: UUID) -> List[HistoryRecord]:
        """History rows of an entry, newest first."""
        return self.history_store.list_history(entry_id)
