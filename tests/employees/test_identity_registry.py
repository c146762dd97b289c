from __future__ import annotations

import random

import pytest

from fakes import COLLECTOR_ID, TAHSILDAR_ID
from field_visits.core.enums import Designation
from field_visits.core.exceptions import (
    AuthorizationError,
    ConflictError,
    DesignationMismatchError,
    EmployeeNotFoundError,
    NotFoundError,
    ValidationError,
)
from field_visits.employees.service import SEED_PREFIXES, generate_employee_id


@pytest.fixture
def registry(container):
    return container.identity_registry


def test_resolve(registry):
    assert registry.resolve(TAHSILDAR_ID, "Tahsildar").name == "Vikram Shah"
    with pytest.raises(DesignationMismatchError):
        registry.resolve(TAHSILDAR_ID, "District Collector")
    with pytest.raises(EmployeeNotFoundError):
        registry.resolve("TAH-000000", "Tahsildar")


def test_resolve_admin(registry):
    assert registry.resolve_admin(COLLECTOR_ID).designation == "District Collector"
    with pytest.raises(DesignationMismatchError):
        registry.resolve_admin(TAHSILDAR_ID)


def test_verify_is_a_yes_no_answer(registry):
    ok = registry.verify(TAHSILDAR_ID, "Tahsildar")
    assert ok.verified and ok.employee_name == "Vikram Shah"
    assert not registry.verify(TAHSILDAR_ID, "District Collector").verified
    assert not registry.verify("NOPE", "Tahsildar").verified
    with pytest.raises(ValidationError):
        registry.verify("", "Tahsildar")


def test_admin_manages_registry(registry, admin, officer):
    created = registry.create_employee(admin, employee_id="DSO-ABCDEF", name="Ravi", designation=Designation.DSO.value)
    assert created in registry.list_employees()

    with pytest.raises(ConflictError):
        registry.create_employee(admin, employee_id="DSO-ABCDEF", name="Ravi", designation=Designation.DSO.value)
    with pytest.raises(ValidationError):
        registry.create_employee(admin, employee_id="X-1", name="Ravi", designation="Sheriff")
    with pytest.raises(AuthorizationError):
        registry.create_employee(officer, employee_id="X-2", name="Ravi", designation=Designation.DSO.value)

    registry.delete_employee(admin, "DSO-ABCDEF")
    with pytest.raises(NotFoundError):
        registry.delete_employee(admin, "DSO-ABCDEF")


def test_generated_ids_and_seeding(container):
    rng = random.Random(7)
    employee_id = generate_employee_id("IAS", rng=rng)
    assert employee_id.startswith("IAS-") and len(employee_id) == 10
    assert not set(employee_id[4:]) & set("01IO")

    container.employees_repo.rows.clear()
    created = container.identity_registry.seed_employees(rng=rng)
    assert len(created) == len(SEED_PREFIXES) == len(Designation)
    assert {e.designation for e in created} == set(Designation.values())


def test_verify_rejects_non_string_ids(registry):
    with pytest.raises(ValidationError) as exc:
        registry.verify(12345, "Tahsildar")
    assert exc.value.code == "bad_type"
