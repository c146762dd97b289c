from __future__ import annotations

import logging
import random
from typing import Optional, Sequence

from ..authorization.guard import AuthorizationGuard
from ..common.datetime_utils import Clock, utc_now
from ..common.validators import optional_text, require_non_empty
from ..core.enums import PRIVILEGED_DESIGNATION, Designation, Operation
from ..core.exceptions import (
    ConflictError,
    DesignationMismatchError,
    EmployeeNotFoundError,
    NotFoundError,
    ValidationError,
)
from .model import Employee, IdentityCheck
from .repository import EmployeeRepository

logger = logging.getLogger(__name__)

# Readable characters only (no 0/O, 1/I).
_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

SEED_PREFIXES = {
    Designation.DISTRICT_COLLECTOR: "IAS",
    Designation.RDO: "RDO",
    Designation.TAHSILDAR: "TAH",
    Designation.BDO: "BDO",
    Designation.CEO_DEO: "EDU",
    Designation.DDHS: "DDHS",
    Designation.DSWO: "DSWO",
    Designation.EXECUTIVE_ENGINEER: "ENG",
    Designation.DSO: "DSO",
}


def generate_employee_id(prefix: str, *, rng: Optional[random.Random] = None) -> str:
    rng = rng or random.SystemRandom()
    return f"{prefix}-" + "".join(rng.choice(_ID_ALPHABET) for _ in range(6))


class IdentityRegistry:
    """Use case: verify that a person claiming a designation actually holds it."""

    def __init__(self, employees: EmployeeRepository, guard: AuthorizationGuard, *, clock: Clock = utc_now):
        self._employees = employees
        self._guard = guard
        self._clock = clock

    def resolve(self, employee_id: str, expected_designation: str) -> Employee:
        employee_id = require_non_empty(employee_id, "Employee ID")
        employee = self._employees.get_by_id(employee_id)
        if not employee:
            raise EmployeeNotFoundError("The provided employee ID does not exist in our records")
        if employee.designation != expected_designation:
            raise DesignationMismatchError(
                f"The provided employee ID doesn't match any {expected_designation} in our records"
            )
        return employee

    def resolve_admin(self, employee_id: str) -> Employee:
        try:
            return self.resolve(employee_id, PRIVILEGED_DESIGNATION.value)
        except DesignationMismatchError:
            raise DesignationMismatchError(
                f"Only {PRIVILEGED_DESIGNATION.value}s with valid employee IDs can register as Admin"
            )

    def verify(self, employee_id: Optional[str], required_designation: Optional[str]) -> IdentityCheck:
        """Lightweight yes/no check for collaborators that do not need an account."""
        employee_id = optional_text(employee_id, "employeeId")
        required_designation = optional_text(required_designation, "requiredDesignation")
        if not employee_id or not required_designation:
            raise ValidationError("employeeId and requiredDesignation are required", code="missing_field")
        try:
            employee = self.resolve(employee_id, required_designation)
        except (EmployeeNotFoundError, DesignationMismatchError):
            return IdentityCheck(verified=False, message="Invalid employee ID or position mismatch")
        return IdentityCheck(verified=True, employee_name=employee.name, message="Verification successful")

    def list_employees(self) -> Sequence[Employee]:
        return self._employees.list_all()

    def create_employee(self, caller, *, employee_id: str, name: str, designation: str) -> Employee:
        self._guard.require(caller, Operation.CREATE_EMPLOYEE)

        employee_id = require_non_empty(employee_id, "Employee ID")
        name = require_non_empty(name, "Employee name")
        designation = require_non_empty(designation, "Designation")
        if designation not in Designation.values():
            raise ValidationError(f"Unknown designation: {designation}", code="bad_designation")

        employee = Employee(employee_id=employee_id, name=name, designation=designation, created_at=self._clock())
        if not self._employees.insert_if_absent(employee):
            raise ConflictError("This employee ID already exists", code="duplicate_employee")
        logger.info("employee created: %s (%s) by account=%s", employee_id, designation, caller.account_id)
        return employee

    def delete_employee(self, caller, employee_id: str) -> None:
        self._guard.require(caller, Operation.DELETE_EMPLOYEE)
        if not self._employees.delete_by_id(require_non_empty(employee_id, "Employee ID")):
            raise NotFoundError("Employee not found")
        logger.info("employee deleted: %s by account=%s", employee_id, caller.account_id)

    def seed_employees(self, *, rng: Optional[random.Random] = None) -> list[Employee]:
        """Create one employee per designation; used by scripts/seed_db.py."""
        created: list[Employee] = []
        for designation, prefix in SEED_PREFIXES.items():
            employee = Employee(
                employee_id=generate_employee_id(prefix, rng=rng),
                name=designation.value,
                designation=designation.value,
                created_at=self._clock(),
            )
            if self._employees.insert_if_absent(employee):
                created.append(employee)
        return created
