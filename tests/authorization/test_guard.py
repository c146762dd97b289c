from __future__ import annotations

from types import SimpleNamespace

import pytest

from field_visits.authorization.guard import AuthorizationGuard, designation_matches
from field_visits.core.enums import Operation, Role
from field_visits.core.exceptions import AuthorizationError

TAHSILDAR = "Tahsildar"


def test_designation_match_ignores_case_and_whitespace():
    assert designation_matches("  tahsildar ", TAHSILDAR)
    assert designation_matches("Block  Development Officer (BDO)", "block development officer (bdo)")
    assert not designation_matches("Tahsil", TAHSILDAR)
    assert not designation_matches(None, TAHSILDAR)
    assert not designation_matches("", "")


def test_admin_may_approve_and_list_but_not_start():
    guard = AuthorizationGuard()
    assert guard.permit(Role.ADMIN, "District Collector", Operation.APPROVE, TAHSILDAR)
    assert guard.permit(Role.ADMIN, "District Collector", Operation.LIST_ALL)
    assert guard.permit(Role.ADMIN, "District Collector", Operation.VIEW_VISIT, TAHSILDAR)
    assert not guard.permit(Role.ADMIN, "District Collector", Operation.START, TAHSILDAR)


@pytest.mark.parametrize("operation", [Operation.START, Operation.COMPLETE, Operation.SUBMIT, Operation.VIEW_VISIT])
def test_officer_acts_only_on_own_designation(operation):
    guard = AuthorizationGuard()
    assert guard.permit(Role.REGULAR, TAHSILDAR, operation, TAHSILDAR)
    assert not guard.permit(Role.REGULAR, TAHSILDAR, operation, "District Supply Officer (DSO)")


@pytest.mark.parametrize("operation", [Operation.APPROVE, Operation.REJECT, Operation.CREATE_VISIT, Operation.LIST_ALL])
def test_officer_never_gets_admin_operations(operation):
    assert not AuthorizationGuard().permit(Role.REGULAR, TAHSILDAR, operation, TAHSILDAR)


def test_missing_role_is_denied():
    assert not AuthorizationGuard().permit(None, TAHSILDAR, Operation.VIEW_VISIT, TAHSILDAR)


def test_require_raises_forbidden():
    caller = SimpleNamespace(account_id=7, role=Role.REGULAR, designation=TAHSILDAR)
    with pytest.raises(AuthorizationError):
        AuthorizationGuard().require(caller, Operation.APPROVE, TAHSILDAR)
