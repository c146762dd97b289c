from __future__ import annotations

from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Account roles used for authorization."""

    REGULAR = "User"
    ADMIN = "Admin"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Role"]:
        """Case-insensitive lookup by value or name ("admin", "Admin", "ADMIN")."""
        if not value:
            return None
        needle = str(value).strip().casefold()
        for role in cls:
            if needle in (role.value.casefold(), role.name.casefold()):
                return role
        return None


class Designation(str, Enum):
    """Fixed list of official job titles."""

    DISTRICT_COLLECTOR = "District Collector"
    RDO = "Revenue Divisional Officer (RDO)"
    TAHSILDAR = "Tahsildar"
    BDO = "Block Development Officer (BDO)"
    CEO_DEO = "Chief/District Educational Officer (CEO/DEO)"
    DDHS = "Deputy Director of Health Services (DDHS)"
    DSWO = "District Social Welfare Officer (DSWO)"
    EXECUTIVE_ENGINEER = "Executive Engineer (PWD/Highways/Rural Dev)"
    DSO = "District Supply Officer (DSO)"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(d.value for d in cls)


# Only District Collectors may hold the Administrator role.
PRIVILEGED_DESIGNATION = Designation.DISTRICT_COLLECTOR


class VisitStatus(str, Enum):
    """Visit lifecycle states as stored in the database."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    OVERDUE = "overdue"


class Operation(str, Enum):
    """Operations checked by the authorization guard."""

    CREATE_VISIT = "create_visit"
    UPDATE_VISIT = "update_visit"
    VIEW_VISIT = "view_visit"
    START = "start"
    COMPLETE = "complete"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    REPOST = "repost"
    LIST_ALL = "list_all"
    SWEEP_OVERDUE = "sweep_overdue"
    CREATE_EMPLOYEE = "create_employee"
    DELETE_EMPLOYEE = "delete_employee"
