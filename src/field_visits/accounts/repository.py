from __future__ import annotations

from typing import Optional, Protocol

from ..core.enums import Role
from .model import Account


class AccountRepository(Protocol):
    def get_by_id(self, account_id: int) -> Optional[Account]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[Account]:
        """Exact (case-sensitive) username lookup, used by login."""
        raise NotImplementedError

    def find_by_username_or_email(self, *, username: Optional[str], email: Optional[str]) -> Optional[Account]:
        """Case-insensitive lookup; used for uniqueness checks."""
        raise NotImplementedError

    def get_by_employee_id(self, employee_id: str) -> Optional[Account]:
        raise NotImplementedError

    def create_account(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        employee_id: str,
        designation: str,
    ) -> Account:
        """Single atomic insert; raises ConflictError if a unique key is taken."""
        raise NotImplementedError

    def update_profile(
        self,
        account_id: int,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
        password_hash: Optional[str] = None,
    ) -> Optional[Account]:
        raise NotImplementedError
