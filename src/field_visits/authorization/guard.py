"""Single place for role/designation access decisions.

Every service asks the guard before touching a visit or the employee registry,
so policy changes happen here and nowhere else.
"""
from __future__ import annotations

import logging
from typing import Optional

from ..common.validators import normalize_designation
from ..core.enums import Operation, Role
from ..core.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

ADMIN_OPERATIONS = frozenset(
    {
        Operation.CREATE_VISIT,
        Operation.UPDATE_VISIT,
        Operation.APPROVE,
        Operation.REJECT,
        Operation.REPOST,
        Operation.LIST_ALL,
        Operation.SWEEP_OVERDUE,
        Operation.CREATE_EMPLOYEE,
        Operation.DELETE_EMPLOYEE,
    }
)

# Transitions an officer performs on visits posted to their own designation.
SELF_OPERATIONS = frozenset({Operation.START, Operation.COMPLETE, Operation.SUBMIT})


def designation_matches(caller_designation: Optional[str], resource_designation: Optional[str]) -> bool:
    """Case-insensitive exact match, ignoring surrounding and repeated whitespace."""
    if not caller_designation or not resource_designation:
        return False
    return normalize_designation(caller_designation) == normalize_designation(resource_designation)


class AuthorizationGuard:
    def permit(
        self,
        caller_role: Optional[Role],
        caller_designation: Optional[str],
        operation: Operation,
        resource_designation: Optional[str] = None,
    ) -> bool:
        if caller_role == Role.ADMIN:
            return operation in ADMIN_OPERATIONS or operation == Operation.VIEW_VISIT

        if caller_role == Role.REGULAR:
            if operation in SELF_OPERATIONS or operation == Operation.VIEW_VISIT:
                return designation_matches(caller_designation, resource_designation)

        return False

    def require(self, caller, operation: Operation, resource_designation: Optional[str] = None) -> None:
        """Raise AuthorizationError unless `caller` (anything with role/designation) is permitted."""
        if not self.permit(caller.role, caller.designation, operation, resource_designation):
            logger.info(
                "forbidden: account=%s role=%s operation=%s",
                getattr(caller, "account_id", None),
                getattr(caller.role, "value", caller.role),
                operation.value,
            )
            raise AuthorizationError("You are not allowed to perform this action")
