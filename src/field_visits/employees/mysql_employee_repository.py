from __future__ import annotations

from typing import Optional, Sequence

import mysql.connector

from ..common.datetime_utils import from_db, to_db
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeRepository


def _row_to_employee(row: dict) -> Employee:
    return Employee(
        employee_id=row["employee_id"],
        name=row["name"],
        designation=row["designation"],
        created_at=from_db(row.get("created_at")),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            # BINARY: employee ids are matched exactly, not by the table collation.
            cur.execute(
                """
                SELECT employee_id, name, designation, created_at
                FROM employees
                WHERE employee_id = BINARY %s
                """,
                (employee_id,),
            )
            row = fetchone(cur)
            return _row_to_employee(row) if row else None

    def insert_if_absent(self, employee: Employee) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO employees(employee_id, name, designation, created_at)
                    VALUES(%s,%s,%s,COALESCE(%s, UTC_TIMESTAMP()))
                    """,
                    (employee.employee_id, employee.name, employee.designation, to_db(employee.created_at)),
                )
        except mysql.connector.IntegrityError:
            return False
        return True

    def delete_by_id(self, employee_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM employees WHERE employee_id = BINARY %s", (employee_id,))
            return cur.rowcount > 0

    def list_all(self) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, name, designation, created_at
                FROM employees
                ORDER BY designation, employee_id
                """
            )
            return [_row_to_employee(r) for r in fetchall(cur)]
