from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import (
    reject_unknown_fields,
    require_email,
    require_min_length,
    optional_text,
    require_non_empty,
    require_string,
)
from ..core.constants import DEFAULT_PASSWORD_HASH_METHOD, MIN_PASSWORD_LENGTH, MIN_USERNAME_LENGTH
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
    WrongDesignationError,
    WrongEmployeeIdError,
    WrongRoleError,
)
from ..employees.service import IdentityRegistry
from .model import Account, Caller
from .repository import AccountRepository
from .tokens import TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials. Please check your username and password."
PROFILE_FIELDS = ("username", "email", "password")


@dataclass(frozen=True)
class AuthResult:
    token: str
    account: Account

    def as_dict(self) -> dict:
        return {"success": True, "token": self.token, "user": self.account.summary()}


class AccountService:
    """Use cases: register, log in, resolve the caller behind a token, edit own profile."""

    def __init__(
        self,
        accounts: AccountRepository,
        identity: IdentityRegistry,
        tokens: TokenService,
        *,
        password_hash_method: str = DEFAULT_PASSWORD_HASH_METHOD,
    ):
        self._accounts = accounts
        self._identity = identity
        self._tokens = tokens
        self._hash_method = password_hash_method
        self._dummy_hash: Optional[str] = None

    def _hash(self, password: str) -> str:
        return generate_password_hash(password, method=self._hash_method)

    def _password_matches(self, account: Optional[Account], password: str) -> bool:
        if account is None:
            # Spend the same hashing work for unknown users.
            if self._dummy_hash is None:
                self._dummy_hash = self._hash("not-a-real-password")
            check_password_hash(self._dummy_hash, password or "")
            return False
        try:
            return check_password_hash(account.password_hash, password or "")
        except (ValueError, TypeError):
            # e.g. placeholder or corrupted hashes
            return False

    def _ensure_unique(self, *, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None) -> None:
        existing = self._accounts.find_by_username_or_email(username=username, email=email)
        if not existing or existing.account_id == exclude_id:
            return
        field = "Email" if email and existing.email.lower() == email.lower() else "Username"
        raise ConflictError(
            f"{field} is already registered. Please use a different {field.lower()}.",
            code="duplicate_account",
        )

    def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        role: str,
        employee_id: str,
        designation: Optional[str] = None,
    ) -> AuthResult:
        username = require_non_empty(username, "Username")
        require_min_length(username, "Username", MIN_USERNAME_LENGTH)
        email = require_email(email)
        password = require_string(password, "Password")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH, code="weak_password")
        role = require_non_empty(role, "Role")
        parsed_role = Role.parse(role)
        if parsed_role is None:
            raise ValidationError('Invalid role specified. Must be either "User" or "Admin".', code="bad_role")
        employee_id = require_non_empty(employee_id, "Employee ID")
        if parsed_role == Role.REGULAR:
            designation = require_non_empty(designation, "Designation")

        self._ensure_unique(username=username, email=email)
        if self._accounts.get_by_employee_id(employee_id):
            raise ConflictError(
                "This employee ID is already registered. If this is your ID, please contact support.",
                code="duplicate_employee",
            )

        if parsed_role == Role.ADMIN:
            employee = self._identity.resolve_admin(employee_id)
        else:
            employee = self._identity.resolve(employee_id, designation)

        account = self._accounts.create_account(
            username=username,
            email=email,
            password_hash=self._hash(password),
            role=parsed_role,
            employee_id=employee.employee_id,
            designation=employee.designation,
        )
        logger.info("account registered: id=%s role=%s", account.account_id, account.role.value)
        return AuthResult(token=self._tokens.issue(account), account=account)

    def authenticate(
        self,
        *,
        username: str,
        password: str,
        role: Optional[str] = None,
        employee_id: Optional[str] = None,
        designation: Optional[str] = None,
    ) -> AuthResult:
        username = require_non_empty(username, "Username")
        password = require_string(password, "Password")
        role = optional_text(role, "Role")
        employee_id = optional_text(employee_id, "Employee ID")
        designation = optional_text(designation, "Designation")

        account = self._accounts.get_by_username(username)
        if not self._password_matches(account, password):
            logger.info("login failed for username=%r", username)
            raise InvalidCredentialsError(INVALID_CREDENTIALS)

        if role:
            claimed = Role.parse(role)
            if claimed != account.role:
                raise WrongRoleError(f"Access denied. Your account is registered as {account.role.value}, not {role}.")

        if designation and account.role == Role.REGULAR and account.designation != designation:
            raise WrongDesignationError(
                f"Access denied. You are registered as {account.designation}, not {designation}."
            )

        if employee_id and account.employee_id != employee_id:
            raise WrongEmployeeIdError("Access denied. The provided employee ID does not match your registration.")

        return AuthResult(token=self._tokens.issue(account), account=account)

    def resolve_caller(self, token: str) -> Caller:
        """Verify the token, then re-read the live account so stale claims are never trusted."""
        claims = self._tokens.decode(token)
        account = self._accounts.get_by_id(claims.account_id)
        if not account:
            raise AuthenticationError("User account not found", code="account_missing")
        return Caller.from_account(account)

    def get_profile(self, caller: Caller) -> Account:
        account = self._accounts.get_by_id(caller.account_id)
        if not account:
            raise NotFoundError("Account not found")
        return account

    def update_profile(self, caller: Caller, changes: Mapping[str, object]) -> Account:
        reject_unknown_fields(changes, PROFILE_FIELDS)

        username = changes.get("username")
        email = changes.get("email")
        password = changes.get("password")

        if username is not None:
            username = require_non_empty(username, "Username")
            require_min_length(username, "Username", MIN_USERNAME_LENGTH)
        if email is not None:
            email = require_email(email)
        password_hash = None
        if password is not None:
            password = require_string(password, "Password")
            require_min_length(password, "Password", MIN_PASSWORD_LENGTH, code="weak_password")
            password_hash = self._hash(password)

        if username is None and email is None and password_hash is None:
            raise ValidationError("Nothing to update", code="missing_field")

        self._ensure_unique(username=username, email=email, exclude_id=caller.account_id)
        account = self._accounts.update_profile(
            caller.account_id,
            username=username,
            email=email,
            password_hash=password_hash,
        )
        if not account:
            raise NotFoundError("Account not found")
        logger.info("profile updated: id=%s fields=%s", caller.account_id, sorted(changes))
        return account
