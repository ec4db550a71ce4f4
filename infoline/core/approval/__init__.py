"""Data entry approval workflow for InfoLine.

Implements the entry status state machine, the transition guard and the
audit trail.
"""

from .states import EntryStatus, EntryTransition, VALID_TRANSITIONS
from .errors import (
    WorkflowError,
    EntryNotFoundError,
    InvalidTransitionError,
    UnauthorizedError,
    DataValidationError,
    PersistenceError,
    TransitionTimeoutError,
)
from .records import DataEntryRecord, HistoryRecord
from .machine import EntryStateMachine
from .audit import AuditRecorder
from .service import TransitionGuard

__all__ = [
    "EntryStatus",
    "EntryTransition",
    "VALID_TRANSITIONS",
    "WorkflowError",
    "EntryNotFoundError",
    "InvalidTransitionError",
    "UnauthorizedError",
    "DataValidationError",
    "PersistenceError",
    "TransitionTimeoutError",
    "DataEntryRecord",
    "HistoryRecord",
    "EntryStateMachine",
    "AuditRecorder",
    "TransitionGuard",
]
