from __future__ import annotations

from typing import Iterable, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class ConflictError(DomainError):
    """Raised when a unique field (username, email, employee id) is already taken."""

    code = "conflict"


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    code = "not_found"


class AuthenticationError(DomainError):
    """Raised when the caller cannot be identified (bad credentials or token)."""

    code = "unauthenticated"


class InvalidCredentialsError(AuthenticationError):
    code = "invalid_credentials"


class AuthorizationError(DomainError):
    """Raised when an authenticated caller lacks permission for an action."""

    code = "forbidden"


class IdentityError(AuthorizationError):
    """Raised when an employee identity claim does not match the registry."""

    code = "identity_mismatch"


class EmployeeNotFoundError(IdentityError):
    code = "employee_not_found"


class DesignationMismatchError(IdentityError):
    code = "designation_mismatch"


class WrongRoleError(AuthorizationError):
    code = "wrong_role"


class WrongDesignationError(AuthorizationError):
    code = "wrong_designation"


class WrongEmployeeIdError(AuthorizationError):
    code = "wrong_employee_id"


class InvalidTransitionError(DomainError):
    """Raised when a visit is not in the state a transition requires."""

    code = "invalid_transition"

    def __init__(self, *, event: str, actual: str, expected: Iterable[str]):
        self.event = event
        self.actual = actual
        self.expected = tuple(expected)
        super().__init__(
            f"Cannot {event} a visit in status '{actual}' (expected: {', '.join(self.expected)})"
        )
