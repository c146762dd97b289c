from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..authorization.guard import AuthorizationGuard
from ..common.datetime_utils import Clock, utc_now
from ..core.enums import Operation
from .repository import VisitRepository

logger = logging.getLogger(__name__)


class OverdueSweeper:
    """Reclassify pending/in-progress visits whose deadline has passed as overdue.

    Idempotent: visits already overdue, submitted or settled are untouched.
    """

    def __init__(self, visits: VisitRepository, *, clock: Clock = utc_now, guard: Optional[AuthorizationGuard] = None):
        self._visits = visits
        self._clock = clock
        self._guard = guard or AuthorizationGuard()

    def sweep(self, now: Optional[datetime] = None) -> int:
        count = self._visits.mark_overdue(now or self._clock())
        if count:
            logger.info("marked %d visit(s) overdue", count)
        return count

    def sweep_as(self, caller) -> int:
        """On-demand sweep requested by an administrator."""
        self._guard.require(caller, Operation.SWEEP_OVERDUE)
        return self.sweep()
