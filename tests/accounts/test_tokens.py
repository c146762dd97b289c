from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from fakes import FrozenClock
from field_visits.accounts.model import Account
from field_visits.accounts.tokens import TokenService
from field_visits.core.enums import Role
from field_visits.core.exceptions import AuthenticationError

ACCOUNT = Account(
    account_id=42,
    username="tahsildar",
    email="t@district.gov.in",
    password_hash="x",
    role=Role.REGULAR,
    employee_id="TAH-XYZ789",
    designation="Tahsildar",
)


def test_round_trip_claims():
    clock = FrozenClock()
    tokens = TokenService("secret", clock=clock)
    claims = tokens.decode(tokens.issue(ACCOUNT))
    assert claims.account_id == 42
    assert claims.role == Role.REGULAR
    assert claims.designation == "Tahsildar"
    assert claims.expires_at == clock() + timedelta(days=1)


def test_expires_after_one_day():
    clock = FrozenClock()
    tokens = TokenService("secret", clock=clock)
    token = tokens.issue(ACCOUNT)
    clock.advance(days=1, seconds=1)
    with pytest.raises(AuthenticationError) as exc:
        tokens.decode(token)
    assert exc.value.code == "token_expired"


@pytest.mark.parametrize("token", ["garbage", TokenService("other-secret").issue(ACCOUNT)])
def test_rejects_tampered_or_foreign_tokens(token):
    with pytest.raises(AuthenticationError) as exc:
        TokenService("secret").decode(token)
    assert exc.value.code == "token_invalid"


def test_missing_token():
    with pytest.raises(AuthenticationError) as exc:
        TokenService("secret").decode("")
    assert exc.value.code == "token_missing"


def test_token_without_subject_is_invalid():
    token = jwt.encode({"exp": 9999999999}, "secret", algorithm="HS256")
    with pytest.raises(AuthenticationError):
        TokenService("secret").decode(token)
