from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Employee:
    """Registry record of an authorized official."""

    employee_id: str
    name: str
    designation: str
    created_at: Optional[datetime] = None

    def summary(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "name": self.name,
            "designation": self.designation,
        }


@dataclass(frozen=True)
class IdentityCheck:
    verified: bool
    employee_name: Optional[str] = None
    message: str = ""
