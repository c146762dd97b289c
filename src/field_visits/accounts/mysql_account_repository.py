from __future__ import annotations

from typing import Optional

import mysql.connector

from ..common.datetime_utils import from_db
from ..core.enums import Role
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Account
from .repository import AccountRepository

_COLUMNS = "account_id, username, email, password_hash, role, employee_id, designation, created_at"


def _row_to_account(row: dict) -> Account:
    return Account(
        account_id=int(row["account_id"]),
        username=row["username"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        employee_id=row["employee_id"],
        designation=row["designation"],
        created_at=from_db(row.get("created_at")),
    )


def _conflict_from(err: mysql.connector.IntegrityError) -> ConflictError:
    msg = str(err)
    if "uq_accounts_employee" in msg:
        return ConflictError(
            "This employee ID is already registered. If this is your ID, please contact support.",
            code="duplicate_employee",
        )
    return ConflictError("Username or email is already registered", code="duplicate_account")


class MySQLAccountRepository(AccountRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, params: tuple) -> Optional[Account]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM accounts WHERE {where} LIMIT 1", params)
            row = fetchone(cur)
            return _row_to_account(row) if row else None

    def get_by_id(self, account_id: int) -> Optional[Account]:
        return self._get_one("account_id=%s", (int(account_id),))

    def get_by_username(self, username: str) -> Optional[Account]:
        return self._get_one("username = BINARY %s", (username,))

    def find_by_username_or_email(self, *, username: Optional[str], email: Optional[str]) -> Optional[Account]:
        clauses = []
        params: list[object] = []
        if username:
            clauses.append("LOWER(username)=LOWER(%s)")
            params.append(username)
        if email:
            clauses.append("LOWER(email)=LOWER(%s)")
            params.append(email)
        if not clauses:
            return None
        return self._get_one(" OR ".join(clauses), tuple(params))

    def get_by_employee_id(self, employee_id: str) -> Optional[Account]:
        return self._get_one("employee_id = BINARY %s", (employee_id,))

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
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO accounts(username, email, password_hash, role, employee_id, designation, created_at)
                    VALUES(%s,%s,%s,%s,%s,%s,UTC_TIMESTAMP())
                    """,
                    (username, email, password_hash, role.value, employee_id, designation),
                )
                account_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as err:
            raise _conflict_from(err) from err

        account = self.get_by_id(account_id)
        if account is None:
            raise RuntimeError(f"Account {account_id} vanished right after insert")
        return account

    def update_profile(
        self,
        account_id: int,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
        password_hash: Optional[str] = None,
    ) -> Optional[Account]:
        sets = []
        params: list[object] = []
        for column, value in (("username", username), ("email", email), ("password_hash", password_hash)):
            if value is not None:
                sets.append(f"{column}=%s")
                params.append(value)

        if sets:
            try:
                with db_cursor(self._conn_factory) as (_, cur):
                    cur.execute(
                        f"UPDATE accounts SET {', '.join(sets)} WHERE account_id=%s",
                        tuple(params + [int(account_id)]),
                    )
            except mysql.connector.IntegrityError as err:
                raise _conflict_from(err) from err

        return self.get_by_id(account_id)
