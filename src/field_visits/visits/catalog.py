"""Read side over the visit collection: filtering, sorting, pagination and counts."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Mapping, Optional

from ..accounts.model import Caller
from ..authorization.guard import AuthorizationGuard
from ..common.datetime_utils import Clock, parse_iso_datetime, utc_now
from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.enums import Operation, VisitStatus
from ..core.exceptions import ValidationError
from .model import Visit
from .repository import SORTABLE_FIELDS, VisitFilter, VisitRepository
from .sweeper import OverdueSweeper

# Query-string names accepted for sorting (camelCase on the wire).
_SORT_ALIASES = {"createdAt": "created_at", "submittedAt": "submitted_at"}


def parse_int_arg(value: Optional[str], name: str, default: int) -> int:
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", code="bad_query")


@dataclass(frozen=True)
class VisitQuery:
    statuses: tuple[VisitStatus, ...] = ()
    place: Optional[str] = None
    location: Optional[str] = None
    before: Optional[datetime] = None
    after: Optional[datetime] = None
    designation: Optional[str] = None
    assigned_to: Optional[int] = None
    sort_by: str = "deadline"
    sort_order: str = "asc"
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        if self.sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort by {self.sort_by}", code="bad_query")
        if self.sort_order not in ("asc", "desc"):
            raise ValidationError("sortOrder must be 'asc' or 'desc'", code="bad_query")
        if self.page < 1:
            raise ValidationError("page must be >= 1", code="bad_query")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", code="bad_query")

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "VisitQuery":
        """Parse request query-string arguments."""
        statuses: tuple[VisitStatus, ...] = ()
        if args.get("status"):
            try:
                statuses = tuple(VisitStatus(s.strip()) for s in args["status"].split(",") if s.strip())
            except ValueError:
                raise ValidationError("Unknown status filter", code="bad_query")

        sort_by = args.get("sortBy") or "deadline"
        assigned_to = args.get("assignedTo")
        return cls(
            statuses=statuses,
            place=(args.get("place") or "").strip() or None,
            location=(args.get("location") or "").strip() or None,
            before=parse_iso_datetime(args["before"], "before") if args.get("before") else None,
            after=parse_iso_datetime(args["after"], "after") if args.get("after") else None,
            designation=(args.get("designation") or "").strip() or None,
            assigned_to=parse_int_arg(assigned_to, "assignedTo", 0) if assigned_to else None,
            sort_by=_SORT_ALIASES.get(sort_by, sort_by),
            sort_order=(args.get("sortOrder") or "asc").lower(),
            page=parse_int_arg(args.get("page"), "page", 1),
            limit=parse_int_arg(args.get("limit"), "limit", DEFAULT_PAGE_SIZE),
        )


@dataclass(frozen=True)
class VisitPage:
    items: list[Visit] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    def to_dict(self, *, now: datetime) -> dict:
        return {
            "success": True,
            "total": self.total,
            "page": self.page,
            "pages": self.pages,
            "limit": self.limit,
            "visits": [v.to_dict(now=now) for v in self.items],
        }


class VisitCatalog:
    def __init__(
        self,
        visits: VisitRepository,
        guard: AuthorizationGuard,
        sweeper: OverdueSweeper,
        *,
        clock: Clock = utc_now,
    ):
        self._visits = visits
        self._guard = guard
        self._sweeper = sweeper
        self._clock = clock

    def _scoped(self, caller: Caller, query: VisitQuery) -> VisitFilter:
        if self._guard.permit(caller.role, caller.designation, Operation.LIST_ALL):
            designation, assigned_to = query.designation, query.assigned_to
        else:
            # Officers only ever see visits posted to their own designation.
            designation, assigned_to = caller.designation, None
        return VisitFilter(
            statuses=query.statuses,
            place=query.place,
            location=query.location,
            before=query.before,
            after=query.after,
            designation=designation,
            assigned_to=assigned_to,
        )

    def search(self, caller: Caller, query: Optional[VisitQuery] = None) -> VisitPage:
        query = query or VisitQuery()
        self._sweeper.sweep()
        items, total = self._visits.search(
            self._scoped(caller, query),
            sort_by=query.sort_by,
            descending=query.sort_order == "desc",
            offset=(query.page - 1) * query.limit,
            limit=query.limit,
        )
        return VisitPage(items=items, total=total, page=query.page, limit=query.limit)

    def pending_approvals(self, caller: Caller, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> VisitPage:
        self._guard.require(caller, Operation.LIST_ALL)
        query = VisitQuery(
            statuses=(VisitStatus.SUBMITTED,), sort_by="submitted_at", sort_order="desc", page=page, limit=limit
        )
        return self.search(caller, query)

    def approved_visits(self, caller: Caller, query: Optional[VisitQuery] = None) -> VisitPage:
        query = replace(query or VisitQuery(sort_order="desc"), statuses=(VisitStatus.APPROVED,))
        return self.search(caller, query)

    def overdue_visits(self, caller: Caller, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> VisitPage:
        query = VisitQuery(statuses=(VisitStatus.OVERDUE,), sort_by="deadline", page=page, limit=limit)
        return self.search(caller, query)

    def counts(self, caller: Caller) -> dict:
        self._sweeper.sweep()
        base = self._scoped(caller, VisitQuery())
        awaiting = VisitStatus.SUBMITTED if caller.is_admin else VisitStatus.PENDING
        return {
            "totalVisits": self._visits.count(base),
            "pending": self._visits.count(replace(base, statuses=(awaiting,))),
            "approved": self._visits.count(replace(base, statuses=(VisitStatus.APPROVED,))),
            "overdue": self._visits.count(replace(base, statuses=(VisitStatus.OVERDUE,))),
        }
