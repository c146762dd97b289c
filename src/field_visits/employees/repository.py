from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Employee


class EmployeeRepository(Protocol):
    """Read-mostly registry of employees.

    Note (DIP): services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def insert_if_absent(self, employee: Employee) -> bool:
        """Insert unless the id exists; False when it already did."""
        raise NotImplementedError

    def delete_by_id(self, employee_id: str) -> bool:
        raise NotImplementedError

    def list_all(self) -> Sequence[Employee]:
        raise NotImplementedError
