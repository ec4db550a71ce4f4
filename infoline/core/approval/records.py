"""Plain records exchanged between the workflow and its persistence ports."""

import copy
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from .states import EntryStatus, EntryTransition


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form the database stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class DataEntryRecord:
    """One school's submission of values for one category."""

    id: UUID
    category_id: UUID
    school_id: UUID
    created_by: UUID
    data: Dict[str, Any] = field(default_factory=dict)
    status: EntryStatus = EntryStatus.DRAFT

    submitted_at: Optional[datetime] = None

    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    approval_comment: Optional[str] = None

    rejected_by: Optional[UUID] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of the payload, safe to store in a history row."""
        return copy.deepcopy(self.data)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["status"] = self.status.value
        for key, value in result.items():
            if isinstance(value, UUID):
                result[key] = str(value)
            elif isinstance(value, datetime):
                result[key] = value.isoformat()
        return result


@dataclass(frozen=True)
class HistoryRecord:
    """Immutable snapshot of an entry at the moment of a transition."""

    id: UUID
    entry_id: UUID
    changed_by: UUID
    data: Dict[str, Any]
    status: EntryStatus
    changed_at: datetime
    previous_status: Optional[EntryStatus] = None
    transition: Optional[EntryTransition] = None
    comment: Optional[str] = None
    sequence: int = 0
