"""Signed session tokens (JWT, HS256) carrying account id, role and designation."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from ..common.datetime_utils import Clock, utc_now
from ..core.constants import TOKEN_TTL_DAYS
from ..core.enums import Role
from ..core.exceptions import AuthenticationError
from .model import Account

ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenClaims:
    account_id: int
    role: Role
    designation: str
    expires_at: datetime


class TokenService:
    def __init__(self, secret: str, *, ttl: timedelta = timedelta(days=TOKEN_TTL_DAYS), clock: Clock = utc_now):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._ttl = ttl
        self._clock = clock

    def issue(self, account: Account) -> str:
        now = self._clock()
        payload = {
            "sub": str(account.account_id),
            "role": account.role.value,
            "designation": account.designation,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> TokenClaims:
        if not token:
            raise AuthenticationError("Access token missing", code="token_missing")
        try:
            # Expiry is checked against the injected clock below.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "exp"], "verify_exp": False, "verify_iat": False},
            )
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
            claims = TokenClaims(
                account_id=int(payload["sub"]),
                role=Role(payload.get("role")),
                designation=str(payload.get("designation") or ""),
                expires_at=expires_at,
            )
        except (jwt.InvalidTokenError, ValueError, TypeError) as err:
            raise AuthenticationError("Invalid token", code="token_invalid") from err

        if claims.expires_at <= self._clock():
            raise AuthenticationError("Token expired", code="token_expired")
        return claims
