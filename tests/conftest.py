from __future__ import annotations

import pytest

from field_visits.core.enums import Designation

from fakes import BDO_ID, COLLECTOR_ID, EMPLOYEES, PASSWORD, SECOND_TAHSILDAR_ID, TAHSILDAR_ID, FrozenClock, make_container


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def container(clock):
    return make_container(clock=clock, employees=EMPLOYEES)


def _register(container, *, username, role, employee_id, designation=None):
    result = container.account_service.register(
        username=username,
        email=f"{username}@district.gov.in",
        password=PASSWORD,
        role=role,
        employee_id=employee_id,
        designation=designation,
    )
    return container.account_service.resolve_caller(result.token)


@pytest.fixture
def admin(container):
    return _register(container, username="collector", role="Admin", employee_id=COLLECTOR_ID)


@pytest.fixture
def officer(container):
    return _register(
        container, username="tahsildar", role="User", employee_id=TAHSILDAR_ID, designation=Designation.TAHSILDAR.value
    )


@pytest.fixture
def second_officer(container):
    return _register(
        container,
        username="tahsildar2",
        role="User",
        employee_id=SECOND_TAHSILDAR_ID,
        designation=Designation.TAHSILDAR.value,
    )


@pytest.fixture
def bdo(container):
    return _register(container, username="bdo", role="User", employee_id=BDO_ID, designation=Designation.BDO.value)
