from __future__ import annotations

from dataclasses import dataclass

from .accounts.mysql_account_repository import MySQLAccountRepository
from .accounts.repository import AccountRepository
from .accounts.service import AccountService
from .accounts.tokens import TokenService
from .authorization.guard import AuthorizationGuard
from .common.datetime_utils import Clock, utc_now
from .core.constants import DEFAULT_PASSWORD_HASH_METHOD
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .employees.service import IdentityRegistry
from .visits.catalog import VisitCatalog
from .visits.mysql_visit_repository import MySQLVisitRepository
from .visits.repository import VisitRepository
from .visits.service import VisitService
from .visits.sweeper import OverdueSweeper


@dataclass(frozen=True)
class Container:
    employees_repo: EmployeeRepository
    accounts_repo: AccountRepository
    visits_repo: VisitRepository

    guard: AuthorizationGuard
    tokens: TokenService
    identity_registry: IdentityRegistry
    account_service: AccountService
    visit_service: VisitService
    overdue_sweeper: OverdueSweeper
    visit_catalog: VisitCatalog
    clock: Clock = utc_now


def build_services(
    *,
    employees_repo: EmployeeRepository,
    accounts_repo: AccountRepository,
    visits_repo: VisitRepository,
    jwt_secret: str,
    password_hash_method: str = DEFAULT_PASSWORD_HASH_METHOD,
    clock: Clock = utc_now,
) -> Container:
    """Wire services over any repository implementations (MySQL in the app, fakes in tests)."""
    guard = AuthorizationGuard()
    tokens = TokenService(jwt_secret, clock=clock)
    identity_registry = IdentityRegistry(employees_repo, guard, clock=clock)
    account_service = AccountService(
        accounts_repo, identity_registry, tokens, password_hash_method=password_hash_method
    )
    visit_service = VisitService(visits_repo, accounts_repo, guard, clock=clock)
    overdue_sweeper = OverdueSweeper(visits_repo, clock=clock, guard=guard)
    visit_catalog = VisitCatalog(visits_repo, guard, overdue_sweeper, clock=clock)

    return Container(
        employees_repo=employees_repo,
        accounts_repo=accounts_repo,
        visits_repo=visits_repo,
        guard=guard,
        tokens=tokens,
        identity_registry=identity_registry,
        account_service=account_service,
        visit_service=visit_service,
        overdue_sweeper=overdue_sweeper,
        visit_catalog=visit_catalog,
        clock=clock,
    )


def build_container(
    *,
    db_config: dict,
    jwt_secret: str,
    password_hash_method: str = DEFAULT_PASSWORD_HASH_METHOD,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))
    return build_services(
        employees_repo=MySQLEmployeeRepository(conn),
        accounts_repo=MySQLAccountRepository(conn),
        visits_repo=MySQLVisitRepository(conn),
        jwt_secret=jwt_secret,
        password_hash_method=password_hash_method,
    )
