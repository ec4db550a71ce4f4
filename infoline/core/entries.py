"""Entry store: creating, editing and listing data entries.

Status changes do not go through here; see
``infoline.core.approval.TransitionGuard``.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from infoline.core.approval.errors import (
    EntryNotFoundError,
    InvalidTransitionError,
    UnauthorizedError,
    DataValidationError,
)
from infoline.core.approval.ports import ColumnSource, EntryQuery, EntryRepository
from infoline.core.approval.records import DataEntryRecord, utcnow
from infoline.core.approval.states import EntryStatus, OPEN_STATUSES, PENDING_REVIEW_STATUSES
from infoline.core.payload import PayloadError, validate_payload

logger = logging.getLogger(__name__)


class EntryStore:
    """Draft lifecycle and queries over data entries."""

    def __init__(
        self,
        entries: EntryRepository,
        columns: ColumnSource,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.entries = entries
        self.columns = columns
        self.clock = clock

    def create_draft(
        self,
        category_id: UUID,
        school_id: UUID,
        created_by: UUID,
        data: Optional[Dict[str, Any]] = None,
    ) -> DataEntryRecord:
        """
        Create a draft entry for a (category, school) pair.

        A pair has at most one draft or submitted entry at a time.

        Raises:
            DataValidationError: If the payload does not fit the category's columns
            InvalidTransitionError: If the pair already has an open entry
        """
        payload = self._validate(category_id, data)

        _, open_count = self.entries.list_entries(EntryQuery(
            category_id=category_id,
            school_id=school_id,
            statuses=list(OPEN_STATUSES),
            limit=1,
        ))
        if open_count:
            raise InvalidTransitionError(
                "This school already has an open entry for the category",
                actor_id=created_by,
            )

        now = self.clock()
        record = DataEntryRecord(
            id=uuid.uuid4(),
            category_id=category_id,
            school_id=school_id,
            created_by=created_by,
            data=payload,
            status=EntryStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        created = self.entries.create_entry(record)
        logger.info("Created draft entry %s for school %s, category %s", created.id, school_id, category_id)
        return created

    def update_draft(self, entry_id: UUID, actor_id: UUID, data: Dict[str, Any]) -> DataEntryRecord:
        """
        Replace the payload of a draft. Only the creator may edit it.

        Raises:
            EntryNotFoundError: If the entry does not exist
            UnauthorizedError: If the actor did not create the entry
            InvalidTransitionError: If the entry is no longer a draft
            DataValidationError: If the payload does not fit the category's columns
        """
        entry = self.get(entry_id)
        if entry.created_by != actor_id:
            raise UnauthorizedError("Only the creator may edit a draft", entry_id=entry_id, actor_id=actor_id)
        if entry.status != EntryStatus.DRAFT:
            raise InvalidTransitionError(
                f"Entry is {entry.status.value} and can no longer be edited",
                current_status=entry.status,
                entry_id=entry_id,
                actor_id=actor_id,
            )

        payload = self._validate(entry.category_id, data, entry_id=entry_id)
        changes = {"data": payload, "updated_at": self.clock()}
        if not self.entries.compare_and_swap(entry_id, EntryStatus.DRAFT, changes):
            current = self.get(entry_id)
            raise InvalidTransitionError(
                f"Entry is {current.status.value} and can no longer be edited",
                current_status=current.status,
                entry_id=entry_id,
                actor_id=actor_id,
            )
        entry.data = changes["data"]
        entry.updated_at = changes["updated_at"]
        return entry

    def get(self, entry_id: UUID) -> DataEntryRecord:
        entry = self.entries.read_entry(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Data entry {entry_id} not found", entry_id=entry_id)
        return entry

    def list(
        self,
        *,
        category_id: Optional[UUID] = None,
        school_id: Optional[UUID] = None,
        school_ids: Optional[List[UUID]] = None,
        statuses: Optional[List[EntryStatus]] = None,
        created_by: Optional[UUID] = None,
        limit: int = 20,
        offset: int = 0,
        oldest_first: bool = False,
    ) -> Tuple[List[DataEntryRecord], int]:
        """List entries matching the filters. Returns (page, total)."""
        return self.entries.list_entries(EntryQuery(
            category_id=category_id,
            school_id=school_id,
            school_ids=school_ids,
            statuses=statuses,
            created_by=created_by,
            limit=limit,
            offset=offset,
            oldest_first=oldest_first,
        ))

    def list_pending(
        self,
        *,
        school_id: Optional[UUID] = None,
        school_ids: Optional[List[UUID]] = None,
        category_id: Optional[UUID] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[DataEntryRecord], int]:
        """Submitted entries awaiting review, oldest submission first."""
        return self.list(
            category_id=category_id,
            school_id=school_id,
            school_ids=school_ids,
            statuses=list(PENDING_REVIEW_STATUSES),
            limit=limit,
            offset=offset,
            oldest_first=True,
        )

    def status_summary(
        self,
        *,
        category_id: Optional[UUID] = None,
        school_id: Optional[UUID] = None,
        school_ids: Optional[List[UUID]] = None,
    ) -> Dict[str, int]:
        """Count entries per status; every status is present."""
        counts = self.entries.count_by_status(category_id=category_id, school_id=school_id, school_ids=school_ids)
        summary = {status.value: counts.get(status, 0) for status in EntryStatus}
        summary["total"] = sum(summary.values())
        return summary

    def _validate(
        self,
        category_id: UUID,
        data: Optional[Dict[str, Any]],
        *,
        entry_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        try:
            return validate_payload(self.columns.columns_for(category_id), data)
        except PayloadError as e:
            raise DataValidationError("Invalid entry values", errors=e.errors, entry_id=entry_id) from e
