"""Data entry state machine.

Decides whether a transition is legal for an entry and who may perform it,
and computes the field changes the transition writes. It does not persist
anything; ``TransitionGuard`` applies the plan with a compare-and-swap write.
"""

from datetime import datetime
from typing import Optional, Dict, Any, NamedTuple
from uuid import UUID

from .errors import InvalidTransitionError, UnauthorizedError, DataValidationError
from .ports import Authorizer
from .records import DataEntryRecord
from .states import (
    EntryStatus,
    EntryTransition,
    TransitionRule,
    can_transition,
    get_transition_rule,
    TERMINAL_STATUSES,
)


class TransitionPlan(NamedTuple):
    """Field changes for one transition, plus the values they replace."""
    rule: TransitionRule
    changes: Dict[str, Any]
    restore: Dict[str, Any]
    comment: Optional[str]

    @property
    def to_status(self) -> EntryStatus:
        return self.rule.to_status


class EntryStateMachine:
    """
    State machine for a single data entry.

    Checks, in order:
    - the transition is defined for the entry's current status
    - the actor may perform it (creator for submit, approver capability
      for approve/reject)
    - a comment is present where the rule demands one
    """

    def __init__(self, entry: DataEntryRecord, *, authorizer: Optional[Authorizer] = None):
        self.entry = entry
        self.authorizer = authorizer

    @property
    def state(self) -> EntryStatus:
        """Current status of the entry."""
        return self.entry.status

    @property
    def is_terminal(self) -> bool:
        return self.entry.status in TERMINAL_STATUSES

    def can_perform(self, transition: EntryTransition, actor_id: UUID) -> bool:
        """Check if the actor could perform a transition right now."""
        rule = get_transition_rule(self.state, transition)
        if rule is None:
            return False
        return self._actor_allowed(rule, actor_id)

    def get_available_transitions(self, actor_id: UUID) -> list[EntryTransition]:
        """Get list of transitions the actor can perform from the current status."""
        return [t for t in EntryTransition if self.can_perform(t, actor_id)]

    def plan(
        self,
        transition: EntryTransition,
        *,
        actor_id: UUID,
        now: datetime,
        comment: Optional[str] = None,
    ) -> TransitionPlan:
        """
        Validate a transition and compute its field changes.

        Args:
            transition: The transition to perform
            actor_id: ID of the user performing it
            now: Timestamp to record
            comment: Approval comment or rejection reason

        Returns:
            The plan to apply

        Raises:
            InvalidTransitionError: If the current status does not allow it
            UnauthorizedError: If the actor may not perform it
            DataValidationError: If a required comment is missing
        """
        context = {"entry_id": self.entry.id, "transition": transition, "actor_id": actor_id}

        if not can_transition(self.state, transition):
            raise InvalidTransitionError(
                f"Cannot {transition.value} an entry in status {self.state.value}",
                current_status=self.state,
                **context,
            )
        rule = get_transition_rule(self.state, transition)

        if not self._actor_allowed(rule, actor_id):
            if rule.requires_creator:
                raise UnauthorizedError(
                    f"Only the creator of the entry may {transition.value} it", **context
                )
            raise UnauthorizedError(
                f"Permission denied: requires {rule.requires_permission}",
                required_permission=rule.requires_permission,
                **context,
            )

        comment = comment.strip() if comment else None
        if rule.requires_comment and not comment:
            raise DataValidationError(
                f"Transition {transition.value} requires a reason",
                errors={"reason": "must not be empty"},
                **context,
            )

        changes = self._changes_for(rule, actor_id, now, comment)
        restore = {key: getattr(self.entry, key) for key in changes}
        return TransitionPlan(rule=rule, changes=changes, restore=restore, comment=comment)

    def _actor_allowed(self, rule: TransitionRule, actor_id: UUID) -> bool:
        if rule.requires_creator and actor_id != self.entry.created_by:
            return False
        if rule.requires_permission:
            if self.authorizer is None:
                return False
            return self.authorizer.has_approval_capability(actor_id, self.entry.school_id)
        return True

    @staticmethod
    def _changes_for(
        rule: TransitionRule,
        actor_id: UUID,
        now: datetime,
        comment: Optional[str],
    ) -> Dict[str, Any]:
        changes: Dict[str, Any] = {"status": rule.to_status, "updated_at": now}

        if rule.transition == EntryTransition.SUBMIT:
            changes["submitted_at"] = now
        elif rule.transition == EntryTransition.APPROVE:
            changes["approved_by"] = actor_id
            changes["approved_at"] = now
            changes["approval_comment"] = comment
        elif rule.transition == EntryTransition.REJECT:
            changes["rejected_by"] = actor_id
            changes["rejected_at"] = now
            changes["rejection_reason"] = comment

        return changes
