"""Visit lifecycle: the single source of truth for legal status transitions.

    pending --start--> in-progress --complete--> completed --submit--> submitted
    submitted --approve--> approved
    submitted --reject--> rejected --repost--> pending
    pending/in-progress --(deadline passes)--> overdue --repost--> pending
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import VisitStatus
from ..core.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Transition:
    event: str
    sources: frozenset
    target: VisitStatus
    # Column stamped once (COALESCE) on entry, and the column recording who did it.
    stamp_field: Optional[str] = None
    actor_field: Optional[str] = None


START = Transition("start", frozenset({VisitStatus.PENDING}), VisitStatus.IN_PROGRESS, "started_at")
COMPLETE = Transition(
    "complete", frozenset({VisitStatus.IN_PROGRESS}), VisitStatus.COMPLETED, "completed_at", "completed_by"
)
SUBMIT = Transition(
    "submit", frozenset({VisitStatus.COMPLETED}), VisitStatus.SUBMITTED, "submitted_at", "submitted_by"
)
APPROVE = Transition(
    "approve", frozenset({VisitStatus.SUBMITTED}), VisitStatus.APPROVED, "approved_at", "approved_by"
)
REJECT = Transition(
    "reject", frozenset({VisitStatus.SUBMITTED}), VisitStatus.REJECTED, "rejected_at", "rejected_by"
)
REPOST = Transition("repost", frozenset({VisitStatus.REJECTED, VisitStatus.OVERDUE}), VisitStatus.PENDING)
MARK_OVERDUE = Transition("mark_overdue", frozenset({VisitStatus.PENDING, VisitStatus.IN_PROGRESS}), VisitStatus.OVERDUE)

TRANSITIONS = {t.event: t for t in (START, COMPLETE, SUBMIT, APPROVE, REJECT, REPOST, MARK_OVERDUE)}

# Fields a transition may write besides status, its stamp and its actor.
TRANSITION_FIELDS = {
    "complete": frozenset({"report"}),
    "reject": frozenset({"rejection_reason"}),
    "repost": frozenset({"deadline"}),
}


def expected_states(transition: Transition) -> list[str]:
    return sorted(s.value for s in transition.sources)


def validate_transition(event: str, current: VisitStatus) -> Transition:
    """Return the transition for `event`, or raise InvalidTransitionError."""
    transition = TRANSITIONS.get(event)
    if transition is None:
        raise ValueError(f"Unknown lifecycle event: {event}")
    if current not in transition.sources:
        raise InvalidTransitionError(event=event, actual=current.value, expected=expected_states(transition))
    return transition


def allowed_events(current: VisitStatus) -> list[str]:
    return [t.event for t in TRANSITIONS.values() if current in t.sources]
