from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping, Optional, Sequence

from ..accounts.model import Caller
from ..accounts.repository import AccountRepository
from ..authorization.guard import AuthorizationGuard, designation_matches
from ..common.datetime_utils import Clock, as_utc, parse_iso_datetime, utc_now
from ..common.validators import optional_text, reject_unknown_fields, require_non_empty
from ..core.enums import Designation, Operation, Role, VisitStatus
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from . import lifecycle
from .lifecycle import Transition
from .model import NewVisit, Photo, Visit, validate_photos
from .repository import EDITABLE_FIELDS, VisitRepository

logger = logging.getLogger(__name__)

# Visits an administrator may still edit.
EDITABLE_STATUSES = (VisitStatus.PENDING, VisitStatus.OVERDUE)


def _canonical_designation(value: object) -> str:
    designation = require_non_empty(value, "postedTo")
    for known in Designation.values():
        if designation_matches(known, designation):
            return known
    raise ValidationError(f"Unknown designation: {designation}", code="bad_designation")


def _as_deadline(value: object) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    return parse_iso_datetime(None if value is None else str(value), "deadline")


class VisitService:
    """Use cases: create visits and move them through the lifecycle."""

    def __init__(
        self,
        visits: VisitRepository,
        accounts: AccountRepository,
        guard: AuthorizationGuard,
        *,
        clock: Clock = utc_now,
    ):
        self._visits = visits
        self._accounts = accounts
        self._guard = guard
        self._clock = clock

    def _require_visit(self, visit_id: int) -> Visit:
        visit = self._visits.get_by_id(int(visit_id))
        if not visit:
            raise NotFoundError("Visit not found")
        return visit

    def _future_deadline(self, value: object) -> datetime:
        deadline = _as_deadline(value)
        if deadline <= self._clock():
            raise ValidationError("Deadline must be in the future", code="past_deadline")
        return deadline

    def _check_assignee(self, caller: Caller, visit: Visit) -> None:
        if visit.assigned_to is not None and visit.assigned_to != caller.account_id:
            raise AuthorizationError("This visit is assigned to another officer")

    def _require_eligible_assignee(self, account_id: int, posted_to: str) -> None:
        """The assignee must be an officer holding the visit's designation."""
        assignee = self._accounts.get_by_id(int(account_id))
        if not assignee or assignee.role != Role.REGULAR:
            raise ValidationError("Assignee must be an existing officer account", code="bad_assignee")
        if not designation_matches(assignee.designation, posted_to):
            raise ValidationError("Assignee's designation does not match postedTo", code="bad_assignee")

    def _authorized_visit(self, caller: Caller, visit_id: int, operation: Operation) -> Visit:
        visit = self._require_visit(visit_id)
        self._guard.require(caller, operation, visit.posted_to)
        return visit

    def _apply(
        self,
        caller: Caller,
        visit: Visit,
        transition: Transition,
        *,
        fields: Optional[Mapping[str, object]] = None,
        photos: Sequence[Photo] = (),
        assignee_only: bool = False,
    ) -> Visit:
        if assignee_only:
            self._check_assignee(caller, visit)
        lifecycle.validate_transition(transition.event, visit.status)

        now = self._clock()
        if transition.sources <= lifecycle.MARK_OVERDUE.sources and visit.is_overdue(now):
            # Deadline passed since the last sweep: settle this visit now.
            if self._visits.apply_transition(visit.visit_id, lifecycle.MARK_OVERDUE, at=now):
                logger.info("visit %s: %s -> overdue on %s", visit.visit_id, visit.status.value, transition.event)
            current = self._require_visit(visit.visit_id)
            raise InvalidTransitionError(
                event=transition.event,
                actual=current.status.value,
                expected=lifecycle.expected_states(transition),
            )

        applied = self._visits.apply_transition(
            visit.visit_id,
            transition,
            at=now,
            actor_id=caller.account_id,
            fields=fields,
            photos=photos,
            claim_for=caller.account_id if transition is lifecycle.START else None,
        )
        if not applied:
            # Lost a race: report what the winner left behind.
            current = self._require_visit(visit.visit_id)
            if current.status in transition.sources and assignee_only:
                self._check_assignee(caller, current)
            raise InvalidTransitionError(
                event=transition.event,
                actual=current.status.value,
                expected=lifecycle.expected_states(transition),
            )

        logger.info(
            "visit %s: %s -> %s by account=%s",
            visit.visit_id,
            visit.status.value,
            transition.target.value,
            caller.account_id,
        )
        return self._require_visit(visit.visit_id)

    def create_visit(
        self,
        caller: Caller,
        *,
        place: str,
        location: str,
        posted_to: str,
        deadline: object,
        instructions: Optional[str] = None,
        assigned_to: Optional[int] = None,
        photos: Sequence[Photo] = (),
    ) -> Visit:
        self._guard.require(caller, Operation.CREATE_VISIT)

        place = require_non_empty(place, "Place")
        location = require_non_empty(location, "Location")
        posted_to = _canonical_designation(posted_to)
        deadline_at = self._future_deadline(deadline)
        photos = validate_photos(photos)

        instructions = optional_text(instructions, "Instructions")
        if assigned_to is not None:
            self._require_eligible_assignee(assigned_to, posted_to)

        visit = self._visits.create_visit(
            NewVisit(
                place=place,
                location=location,
                instructions=instructions,
                posted_to=posted_to,
                deadline=deadline_at,
                created_by=caller.account_id,
                created_at=self._clock(),
                assigned_to=int(assigned_to) if assigned_to is not None else None,
                photos=photos,
            )
        )
        logger.info("visit %s created for %s by account=%s", visit.visit_id, posted_to, caller.account_id)
        return visit

    def get_visit(self, caller: Caller, visit_id: int) -> Visit:
        visit = self._require_visit(visit_id)
        self._guard.require(caller, Operation.VIEW_VISIT, visit.posted_to)
        return visit

    def update_visit(self, caller: Caller, visit_id: int, changes: Mapping[str, object]) -> Visit:
        self._guard.require(caller, Operation.UPDATE_VISIT)
        reject_unknown_fields(changes, EDITABLE_FIELDS)
        if not changes:
            raise ValidationError("Nothing to update", code="missing_field")

        fields: dict[str, object] = {}
        for name, value in changes.items():
            if name == "deadline":
                fields[name] = self._future_deadline(value)
            elif name == "posted_to":
                fields[name] = _canonical_designation(value)
            elif name == "instructions":
                fields[name] = optional_text(value, "Instructions")
            else:
                fields[name] = require_non_empty(value, name.capitalize())

        # An overdue visit gets a new deadline only through repost.
        if "deadline" in fields:
            event, sources = "reschedule", (VisitStatus.PENDING,)
        else:
            event, sources = "update", EDITABLE_STATUSES

        visit = self._require_visit(visit_id)
        if visit.status not in sources:
            raise InvalidTransitionError(event=event, actual=visit.status.value, expected=[s.value for s in sources])

        retargeting = "posted_to" in fields
        if retargeting and visit.assigned_to is not None:
            self._require_eligible_assignee(visit.assigned_to, fields["posted_to"])

        updated = self._visits.update_details(
            visit.visit_id,
            sources=sources,
            fields=fields,
            check_assignee=retargeting,
            expected_assignee=visit.assigned_to,
        )
        if not updated:
            current = self._require_visit(visit.visit_id)
            if current.status not in sources:
                raise InvalidTransitionError(
                    event=event, actual=current.status.value, expected=[s.value for s in sources]
                )
            raise ConflictError("The visit was claimed while being edited; reload and retry", code="assignee_changed")

        logger.info("visit %s updated (%s) by account=%s", visit.visit_id, ", ".join(sorted(fields)), caller.account_id)
        return self._require_visit(visit.visit_id)

    def start(self, caller: Caller, visit_id: int) -> Visit:
        visit = self._authorized_visit(caller, visit_id, Operation.START)
        return self._apply(caller, visit, lifecycle.START, assignee_only=True)

    def complete(self, caller: Caller, visit_id: int, *, report: str, photos: Sequence[Photo] = ()) -> Visit:
        visit = self._authorized_visit(caller, visit_id, Operation.COMPLETE)
        report = require_non_empty(report, "Report")
        photos = validate_photos(photos)
        validate_photos(visit.photos + photos)
        return self._apply(
            caller,
            visit,
            lifecycle.COMPLETE,
            fields={"report": report},
            photos=photos,
            assignee_only=True,
        )

    def submit_for_approval(self, caller: Caller, visit_id: int) -> Visit:
        visit = self._authorized_visit(caller, visit_id, Operation.SUBMIT)
        return self._apply(caller, visit, lifecycle.SUBMIT, assignee_only=True)

    def approve(self, caller: Caller, visit_id: int) -> Visit:
        visit = self._authorized_visit(caller, visit_id, Operation.APPROVE)
        return self._apply(caller, visit, lifecycle.APPROVE)

    def reject(self, caller: Caller, visit_id: int, *, reason: str) -> Visit:
        visit = self._authorized_visit(caller, visit_id, Operation.REJECT)
        reason = require_non_empty(reason, "Rejection reason")
        return self._apply(caller, visit, lifecycle.REJECT, fields={"rejection_reason": reason})

    def repost(self, caller: Caller, visit_id: int, *, new_deadline: object) -> Visit:
        visit = self._authorized_visit(caller, visit_id, Operation.REPOST)
        deadline = self._future_deadline(new_deadline)
        return self._apply(caller, visit, lifecycle.REPOST, fields={"deadline": deadline})
