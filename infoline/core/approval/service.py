"""Transition guard for data entry approvals.

Applies submit/approve/reject to stored entries:

1. reads the entry and plans the transition with ``EntryStateMachine``
2. writes the new status with a compare-and-swap on the status read
3. appends exactly one history row through ``AuditRecorder``
4. notifies the interested users, best-effort

If the history row cannot be stored, the status write is undone with a
second compare-and-swap and ``PersistenceError`` is raised. The status
write and its history row are therefore visible together or not at all.
"""

import dataclasses
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from .audit import AuditRecorder
from .errors import (
    WorkflowError,
    EntryNotFoundError,
    InvalidTransitionError,
    DataValidationError,
    PersistenceError,
    TransitionTimeoutError,
)
from .machine import EntryStateMachine, TransitionPlan
from .ports import Authorizer, ColumnSource, EntryRepository, HistoryRepository, Notifier
from .records import DataEntryRecord, HistoryRecord, utcnow
from .states import EntryTransition
from infoline.core.payload import PayloadError, validate_payload

logger = logging.getLogger(__name__)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class TransitionGuard:
    """
    Performs guarded status transitions on data entries.

    Handles:
    - Status and capability checks
    - Optimistic concurrency (compare-and-swap on status)
    - Bounded retry of failed status writes
    - Compensating rollback when the history insert fails
    - Request deadline
    - Best-effort notification
    """

    def __init__(
        self,
        entries: EntryRepository,
        history: HistoryRepository,
        authorizer: Authorizer,
        *,
        notifier: Optional[Notifier] = None,
        columns: Optional[ColumnSource] = None,
        clock: Callable[[], datetime] = utcnow,
        max_retries: int = 3,
        retry_delay: float = 0.2,
        timeout: Optional[float] = 10.0,
        sleep: Callable[[float], None] = time.sleep,
        link_template: str = "/data-entries/{entry_id}",
    ):
        """
        Initialize the guard.

        Args:
            entries: Entry persistence
            history: History persistence
            authorizer: Approval capability checks
            notifier: Receives a message after each successful transition
            columns: Category columns; when given, payloads are validated on submit
            clock: Source of transition timestamps
            max_retries: Maximum retry attempts for a failed status write
            retry_delay: Initial delay between retries (doubles each retry)
            timeout: Seconds a single transition may take, None for no limit
            sleep: Called between retries
            link_template: Link placed in notifications
        """
        self.entries = entries
        self.authorizer = authorizer
        self.notifier = notifier
        self.columns = columns
        self.clock = clock
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.sleep = sleep
        self.link_template = link_template
        self.audit = AuditRecorder(history, clock=clock)

    def submit(self, entry_id: UUID, actor_id: UUID) -> DataEntryRecord:
        """
        Submit a draft entry for review.

        Raises:
            EntryNotFoundError: If the entry does not exist
            InvalidTransitionError: If the entry is not a draft
            UnauthorizedError: If the actor did not create the entry
            DataValidationError: If the payload is invalid or incomplete
            PersistenceError: If the store failed
            TransitionTimeoutError: If the deadline passed
        """
        return self._apply(entry_id, EntryTransition.SUBMIT, actor_id)

    def approve(self, entry_id: UUID, actor_id: UUID, comment: Optional[str] = None) -> DataEntryRecord:
        """Approve a submitted entry."""
        return self._apply(entry_id, EntryTransition.APPROVE, actor_id, comment=comment)

    def reject(self, entry_id: UUID, actor_id: UUID, reason: Optional[str]) -> DataEntryRecord:
        """Reject a submitted entry. The reason must not be blank."""
        self._require_reason(reason, actor_id, entry_id=entry_id)
        return self._apply(entry_id, EntryTransition.REJECT, actor_id, comment=reason)

    def batch_approve(
        self,
        entry_ids: List[UUID],
        actor_id: UUID,
        comment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Approve multiple entries; one failure does not stop the others.

        Returns:
            Summary of results
        """
        results = {"approved": [], "failed": []}

        for entry_id in entry_ids:
            try:
                self.approve(entry_id, actor_id, comment)
                results["approved"].append(str(entry_id))
            except WorkflowError as e:
                results["failed"].append({
                    "id": str(entry_id),
                    "error": e.message,
                    "kind": type(e).__name__,
                })

        return results

    def batch_reject(self, entry_ids: List[UUID], actor_id: UUID, reason: str) -> Dict[str, Any]:
        """Reject multiple entries with the same reason."""
        self._require_reason(reason, actor_id)
        results = {"rejected": [], "failed": []}

        for entry_id in entry_ids:
            try:
                self.reject(entry_id, actor_id, reason)
                results["rejected"].append(str(entry_id))
            except WorkflowError as e:
                results["failed"].append({
                    "id": str(entry_id),
                    "error": e.message,
                    "kind": type(e).__name__,
                })

        return results

    @staticmethod
    def _require_reason(reason: Optional[str], actor_id: UUID, *, entry_id: Optional[UUID] = None) -> None:
        if not reason or not reason.strip():
            raise DataValidationError(
                "A rejection reason is required",
                errors={"reason": "must not be empty"},
                entry_id=entry_id,
                transition=EntryTransition.REJECT,
                actor_id=actor_id,
            )

    def history(self, entry_id: UUID) -> List[HistoryRecord]:
        """History rows of an entry, newest first."""
        return self.audit.history(entry_id)

    def available_transitions(self, entry_id: UUID, actor_id: UUID) -> List[EntryTransition]:
        """Transitions the actor could perform on the entry right now."""
        entry = self._read(entry_id, None, actor_id)
        return EntryStateMachine(entry, authorizer=self.authorizer).get_available_transitions(actor_id)

    def _apply(
        self,
        entry_id: UUID,
        transition: EntryTransition,
        actor_id: UUID,
        *,
        comment: Optional[str] = None,
    ) -> DataEntryRecord:
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        context = {"entry_id": entry_id, "transition": transition, "actor_id": actor_id}

        entry = self._read(entry_id, transition, actor_id)
        plan = EntryStateMachine(entry, authorizer=self.authorizer).plan(
            transition, actor_id=actor_id, now=self.clock(), comment=comment
        )
        if transition == EntryTransition.SUBMIT and self.columns is not None:
            self._validate_for_submit(entry, context)

        self._write_status(entry, plan, deadline, context)

        try:
            self.audit.record(
                entry.id,
                actor_id,
                entry.snapshot(),
                plan.to_status,
                previous_status=entry.status,
                transition=transition,
                comment=plan.comment,
                changed_at=plan.changes["updated_at"],
            )
        except (PersistenceError, TransitionTimeoutError) as e:
            self._compensate(entry, plan, context)
            if isinstance(e, TransitionTimeoutError):
                raise self._fill(e, context)
            raise PersistenceError(
                f"Could not record history for entry {entry_id}; status change was rolled back",
                **context,
            ) from e

        updated = dataclasses.replace(entry, **plan.changes)
        logger.info(
            "Entry %s: %s -> %s by %s",
            entry_id, entry.status.value, plan.to_status.value, actor_id,
        )
        self._notify(updated, transition, plan)
        return updated

    def _read(self, entry_id: UUID, transition: Optional[EntryTransition], actor_id: UUID) -> DataEntryRecord:
        try:
            entry = self.entries.read_entry(entry_id)
        except (PersistenceError, TransitionTimeoutError) as e:
            raise self._fill(e, {"entry_id": entry_id, "transition": transition, "actor_id": actor_id})
        if entry is None:
            raise EntryNotFoundError(
                f"Data entry {entry_id} not found",
                entry_id=entry_id,
                transition=transition,
                actor_id=actor_id,
            )
        return entry

    def _validate_for_submit(self, entry: DataEntryRecord, context: Dict[str, Any]) -> None:
        try:
            columns = self.columns.columns_for(entry.category_id)
        except (PersistenceError, TransitionTimeoutError) as e:
            raise self._fill(e, context)
        try:
            validate_payload(columns, entry.data, require_complete=True)
        except PayloadError as e:
            raise DataValidationError(
                "Entry cannot be submitted until its values are valid and complete",
                errors=e.errors,
                **context,
            ) from e

    def _write_status(
        self,
        entry: DataEntryRecord,
        plan: TransitionPlan,
        deadline: Optional[float],
        context: Dict[str, Any],
    ) -> None:
        """Compare-and-swap the planned changes, retrying failed writes."""
        delay = self.retry_delay
        last_error: Optional[PersistenceError] = None

        for attempt in range(self.max_retries + 1):
            self._check_deadline(deadline, context)
            try:
                swapped = self.entries.compare_and_swap(entry.id, entry.status, plan.changes)
            except TransitionTimeoutError as e:
                raise self._fill(e, context)
            except PersistenceError as e:
                last_error = e
                current = self._read(entry.id, context["transition"], context["actor_id"])
                if self._write_landed(current, plan):
                    logger.warning(
                        "Status write for entry %s reported an error but was applied: %s",
                        entry.id, e,
                    )
                    return
                # Retry only if the failed write left no trace
                if current.status != entry.status:
                    raise self._conflict(current, context) from e
                if attempt < self.max_retries:
                    logger.warning(
                        "Status write for entry %s failed (attempt %d/%d), retrying in %.2fs: %s",
                        entry.id, attempt + 1, self.max_retries + 1, delay, e,
                    )
                    self.sleep(delay)
                    delay *= 2
                continue

            if swapped:
                return
            current = self._read(entry.id, context["transition"], context["actor_id"])
            raise self._conflict(current, context)

        raise PersistenceError(
            f"Status write for entry {entry.id} failed after {self.max_retries + 1} attempts",
            **context,
        ) from last_error

    def _compensate(self, entry: DataEntryRecord, plan: TransitionPlan, context: Dict[str, Any]) -> None:
        """Undo a status write whose history row could not be stored."""
        try:
            restored = self.entries.compare_and_swap(entry.id, plan.to_status, plan.restore)
        except WorkflowError as e:
            logger.error(
                "Rollback of entry %s to %s failed: %s (context: %s)",
                entry.id, entry.status.value, e, self._fill(e, context).context(),
            )
            return
        if restored:
            logger.warning("Rolled back entry %s to %s after history insert failed", entry.id, entry.status.value)
        else:
            logger.error(
                "Rollback of entry %s skipped: status is no longer %s",
                entry.id, plan.to_status.value,
            )

    def _notify(self, entry: DataEntryRecord, transition: EntryTransition, plan: TransitionPlan) -> None:
        if self.notifier is None:
            return
        link = self.link_template.format(entry_id=entry.id)

        try:
            if transition == EntryTransition.SUBMIT:
                recipients = self.authorizer.approver_ids(entry.school_id)
                title = "Data entry submitted"
                message = "A data entry was submitted and is waiting for review."
            elif transition == EntryTransition.APPROVE:
                recipients = [entry.created_by]
                title = "Data entry approved"
                message = "Your data entry was approved."
                if plan.comment:
                    message += f" Comment: {plan.comment}"
            else:
                recipients = [entry.created_by]
                title = "Data entry rejected"
                message = f"Your data entry was rejected. Reason: {plan.comment}"
        except Exception as e:
            logger.warning("Could not resolve notification recipients for entry %s: %s", entry.id, e)
            return

        for recipient_id in recipients:
            try:
                self.notifier.send(recipient_id, title, message, link)
            except Exception as e:
                logger.warning("Notification to %s about entry %s failed: %s", recipient_id, entry.id, e)

    def _check_deadline(self, deadline: Optional[float], context: Dict[str, Any]) -> None:
        if deadline is not None and time.monotonic() > deadline:
            raise TransitionTimeoutError(
                f"Transition did not complete within {self.timeout}s",
                **context,
            )

    @staticmethod
    def _write_landed(current: DataEntryRecord, plan: TransitionPlan) -> bool:
        """True if the stored row carries exactly the planned changes."""
        for key, planned in plan.changes.items():
            stored = getattr(current, key)
            if isinstance(planned, datetime) and isinstance(stored, datetime):
                planned, stored = _as_naive_utc(planned), _as_naive_utc(stored)
            if stored != planned:
                return False
        return True

    @staticmethod
    def _conflict(current: DataEntryRecord, context: Dict[str, Any]) -> InvalidTransitionError:
        transition = context["transition"]
        return InvalidTransitionError(
            f"Cannot {transition.value} entry: status changed to {current.status.value}",
            current_status=current.status,
            **context,
        )

    @staticmethod
    def _fill(error: WorkflowError, context: Dict[str, Any]) -> WorkflowError:
        """Attach request context to an error raised by a collaborator."""
        for key, value in context.items():
            if getattr(error, key, None) is None:
                setattr(error, key, value)
        return error
