"""Data entry workflow states and transitions.

State Machine Diagram:

    ┌──────────┐
    │  DRAFT   │ ← Initial state (school is still filling in values)
    └────┬─────┘
         │ submit (creator)
    ┌────▼──────┐
    │ SUBMITTED │ (waiting for a region/sector reviewer)
    └────┬──────┘
         │
         ├─────────────────────┐
         │ approve             │ reject (reason required)
    ┌────▼─────┐         ┌─────▼────┐
    │ APPROVED │         │ REJECTED │
    └──────────┘         └──────────┘

APPROVED and REJECTED are terminal: no transition leaves them.
"""

from enum import Enum
from typing import Set, Dict, Optional, NamedTuple


class EntryStatus(str, Enum):
    """Statuses of a data entry."""

    DRAFT = "draft"              # Editable by its creator
    SUBMITTED = "submitted"      # Awaiting review

    # Terminal statuses
    APPROVED = "approved"
    REJECTED = "rejected"


class EntryTransition(str, Enum):
    """Actions that change an entry's status."""

    SUBMIT = "submit"            # DRAFT → SUBMITTED
    APPROVE = "approve"          # SUBMITTED → APPROVED
    REJECT = "reject"            # SUBMITTED → REJECTED


class TransitionRule(NamedTuple):
    """Defines a valid status transition."""
    from_status: EntryStatus
    to_status: EntryStatus
    transition: EntryTransition
    requires_permission: Optional[str] = None
    requires_creator: bool = False
    requires_comment: bool = False


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(EntryStatus.DRAFT, EntryStatus.SUBMITTED, EntryTransition.SUBMIT,
                   requires_creator=True),
    TransitionRule(EntryStatus.SUBMITTED, EntryStatus.APPROVED, EntryTransition.APPROVE,
                   "data_entries:approve"),
    TransitionRule(EntryStatus.SUBMITTED, EntryStatus.REJECTED, EntryTransition.REJECT,
                   "data_entries:approve", requires_comment=True),
]

VALID_TRANSITIONS: Dict[EntryStatus, Set[EntryTransition]] = {}
TRANSITION_TARGETS: Dict[tuple[EntryStatus, EntryTransition], TransitionRule] = {}

for rule in TRANSITION_RULES:
    VALID_TRANSITIONS.setdefault(rule.from_status, set()).add(rule.transition)
    TRANSITION_TARGETS[(rule.from_status, rule.transition)] = rule


TERMINAL_STATUSES: Set[EntryStatus] = {
    EntryStatus.APPROVED,
    EntryStatus.REJECTED,
}

# Statuses in which a (category, school) pair counts as "in progress"
OPEN_STATUSES: Set[EntryStatus] = {
    EntryStatus.DRAFT,
    EntryStatus.SUBMITTED,
}

# Statuses that need a reviewer's attention
PENDING_REVIEW_STATUSES: Set[EntryStatus] = {
    EntryStatus.SUBMITTED,
}


def can_transition(from_status: EntryStatus, transition: EntryTransition) -> bool:
    """Check if a transition is valid from the given status."""
    return transition in VALID_TRANSITIONS.get(from_status, set())


def get_transition_rule(from_status: EntryStatus, transition: EntryTransition) -> Optional[TransitionRule]:
    """Get the transition rule for a status/action combination."""
    return TRANSITION_TARGETS.get((from_status, transition))


def get_target_status(from_status: EntryStatus, transition: EntryTransition) -> Optional[EntryStatus]:
    """Get the target status for a transition."""
    rule = get_transition_rule(from_status, transition)
    return rule.to_status if rule else None
