from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import VisitStatus
from .lifecycle import Transition
from .model import NewVisit, Photo, Visit

# Fields an administrator may edit on an open visit.
EDITABLE_FIELDS = ("place", "location", "instructions", "posted_to", "deadline")

SORTABLE_FIELDS = ("deadline", "created_at", "place", "location", "status", "submitted_at")


@dataclass(frozen=True)
class VisitFilter:
    statuses: tuple[VisitStatus, ...] = ()
    place: Optional[str] = None
    location: Optional[str] = None
    before: Optional[datetime] = None
    after: Optional[datetime] = None
    designation: Optional[str] = None
    assigned_to: Optional[int] = None


class VisitRepository(Protocol):
    def create_visit(self, new: NewVisit) -> Visit:
        raise NotImplementedError

    def get_by_id(self, visit_id: int, *, with_photos: bool = True) -> Optional[Visit]:
        raise NotImplementedError

    def apply_transition(
        self,
        visit_id: int,
        transition: Transition,
        *,
        at: datetime,
        actor_id: Optional[int] = None,
        fields: Optional[Mapping[str, object]] = None,
        photos: Sequence[Photo] = (),
        claim_for: Optional[int] = None,
    ) -> bool:
        """Atomically move the visit to `transition.target`.

        Only applies when the current status is one of `transition.sources` (and,
        with `claim_for`, the visit is unassigned or already assigned to that
        account). Returns False when nothing matched; state is then unchanged.
        """
        raise NotImplementedError

    def update_details(
        self,
        visit_id: int,
        *,
        sources: Sequence[VisitStatus],
        fields: Mapping[str, object],
        check_assignee: bool = False,
        expected_assignee: Optional[int] = None,
    ) -> bool:
        """Atomically write `fields` while the status is one of `sources`.

        With `check_assignee`, also only while `assigned_to` still equals
        `expected_assignee` (None meaning unassigned).
        """
        raise NotImplementedError

    def search(
        self,
        flt: VisitFilter,
        *,
        sort_by: str = "deadline",
        descending: bool = False,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Visit], int]:
        """Return one page of visits (without photos) and the total match count."""
        raise NotImplementedError

    def count(self, flt: VisitFilter) -> int:
        raise NotImplementedError

    def mark_overdue(self, now: datetime) -> int:
        raise NotImplementedError
