"""Exceptions raised by the data entry workflow.

Every error carries the entry id, the attempted transition and the acting
user so callers can log a failure without re-deriving its context.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from .states import EntryStatus, EntryTransition


class WorkflowError(Exception):
    """Base class for data entry workflow failures."""

    def __init__(
        self,
        message: str,
        *,
        entry_id: Optional[UUID] = None,
        transition: Optional[EntryTransition] = None,
        actor_id: Optional[UUID] = None,
    ):
        super().__init__(message)
        self.message = message
        self.entry_id = entry_id
        self.transition = transition
        self.actor_id = actor_id

    def context(self) -> Dict[str, Any]:
        """Structured context for log records and API error bodies."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "entry_id": str(self.entry_id) if self.entry_id else None,
            "transition": self.transition.value if self.transition else None,
            "actor_id": str(self.actor_id) if self.actor_id else None,
        }


class EntryNotFoundError(WorkflowError):
    """Raised when the entry does not exist."""


class InvalidTransitionError(WorkflowError):
    """Raised when the entry's current status does not allow the transition."""

    def __init__(self, message: str, *, current_status: Optional[EntryStatus] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_status = current_status

    def context(self) -> Dict[str, Any]:
        context = super().context()
        context["current_status"] = self.current_status.value if self.current_status else None
        return context


class UnauthorizedError(WorkflowError):
    """Raised when the actor lacks the capability for the transition."""

    def __init__(self, message: str, *, required_permission: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.required_permission = required_permission


class DataValidationError(WorkflowError):
    """Raised when input is rejected before any state is touched."""

    def __init__(self, message: str, *, errors: Optional[Dict[str, str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or {}

    def context(self) -> Dict[str, Any]:
        context = super().context()
        context["errors"] = self.errors
        return context


class PersistenceError(WorkflowError):
    """Raised when the store is unreachable or a write could not be applied."""


class TransitionTimeoutError(WorkflowError):
    """Raised when a request exceeds its deadline."""
