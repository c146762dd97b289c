from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Account:
    """Domain entity: Account.

    Note: role and designation were validated against the employee registry at
    registration and never change afterwards.
    """

    account_id: int
    username: str
    email: str
    password_hash: str
    role: Role
    employee_id: str
    designation: str
    created_at: Optional[datetime] = None

    def summary(self) -> dict:
        return {
            "id": self.account_id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "designation": self.designation,
            "employeeId": self.employee_id,
        }


@dataclass(frozen=True)
class Caller:
    """The authenticated account behind a request, re-read from the store."""

    account_id: int
    username: str
    role: Role
    designation: str
    employee_id: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_account(cls, account: Account) -> "Caller":
        return cls(
            account_id=account.account_id,
            username=account.username,
            role=account.role,
            designation=account.designation,
            employee_id=account.employee_id,
        )
