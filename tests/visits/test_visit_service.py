from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from field_visits.core.enums import VisitStatus
from field_visits.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from field_visits.visits import lifecycle
from field_visits.visits.model import Photo

PNG = Photo(content_type="image/png", data=b"\x89PNG\r\n\x1a\nfake")


@pytest.fixture
def service(container):
    return container.visit_service


def _create(service, admin, clock, **overrides):
    kwargs = dict(
        place="Taluk Office",
        location="Madurai North",
        posted_to="Tahsildar",
        deadline=clock() + timedelta(hours=1),
        instructions="Inspect ration records",
    )
    kwargs.update(overrides)
    return service.create_visit(admin, **kwargs)


def test_start_sets_in_progress_once(service, admin, officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)
    assert visit.status == VisitStatus.PENDING

    started = service.start(officer, visit.visit_id)
    assert started.status == VisitStatus.IN_PROGRESS
    assert started.started_at == clock()

    clock.advance(minutes=5)
    with pytest.raises(InvalidTransitionError) as exc:
        service.start(officer, visit.visit_id)
    assert exc.value.actual == "in-progress"
    assert service.get_visit(officer, visit.visit_id).started_at == started.started_at


def test_full_reject_and_repost_round(service, admin, officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)
    service.start(officer, visit.visit_id)

    completed = service.complete(officer, visit.visit_id, report="ok")
    assert completed.status == VisitStatus.COMPLETED
    assert completed.report == "ok"
    assert completed.completed_by == officer.account_id

    submitted = service.submit_for_approval(officer, visit.visit_id)
    assert submitted.status == VisitStatus.SUBMITTED
    assert submitted.submitted_by == officer.account_id

    rejected = service.reject(admin, visit.visit_id, reason="incomplete")
    assert rejected.status == VisitStatus.REJECTED
    assert rejected.rejection_reason == "incomplete"
    assert rejected.rejected_by == admin.account_id

    clock.advance(minutes=30)
    new_deadline = clock() + timedelta(days=2)
    reposted = service.repost(admin, visit.visit_id, new_deadline=new_deadline)
    assert reposted.status == VisitStatus.PENDING
    assert reposted.deadline == new_deadline
    assert reposted.rejected_at == rejected.rejected_at
    assert reposted.report == "ok"


def test_submit_requires_completed(service, admin, officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)
    service.start(officer, visit.visit_id)
    with pytest.raises(InvalidTransitionError) as exc:
        service.submit_for_approval(officer, visit.visit_id)
    assert exc.value.expected == ("completed",)


def test_non_admin_approve_is_forbidden_and_state_unchanged(service, admin, officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)
    service.start(officer, visit.visit_id)
    service.complete(officer, visit.visit_id, report="done")
    service.submit_for_approval(officer, visit.visit_id)

    with pytest.raises(AuthorizationError):
        service.approve(officer, visit.visit_id)
    assert service.get_visit(admin, visit.visit_id).status == VisitStatus.SUBMITTED


def test_second_approve_fails(service, admin, officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)
    service.start(officer, visit.visit_id)
    service.complete(officer, visit.visit_id, report="done")
    service.submit_for_approval(officer, visit.visit_id)

    approved = service.approve(admin, visit.visit_id)
    assert approved.approved_by == admin.account_id
    with pytest.raises(InvalidTransitionError):
        service.approve(admin, visit.visit_id)
    with pytest.raises(InvalidTransitionError):
        service.reject(admin, visit.visit_id, reason="too late")


def test_racing_approve_loses_on_stale_read(service, container, admin, officer, clock, monkeypatch):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)
    service.start(officer, visit.visit_id)
    service.complete(officer, visit.visit_id, report="done")
    service.submit_for_approval(officer, visit.visit_id)

    repo = container.visits_repo
    stale = repo.get_by_id(visit.visit_id)
    service.approve(admin, visit.visit_id)

    # The loser read the visit before the winner's update landed.
    original = repo.get_by_id
    reads = iter([stale])
    monkeypatch.setattr(repo, "get_by_id", lambda visit_id, **kw: next(reads, None) or original(visit_id, **kw))

    with pytest.raises(InvalidTransitionError) as exc:
        service.approve(admin, visit.visit_id)
    assert exc.value.actual == "approved"


def test_officer_of_other_designation_cannot_start(service, admin, bdo, clock):
    visit = _create(service, admin, clock)
    with pytest.raises(AuthorizationError):
        service.start(bdo, visit.visit_id)


def test_unassigned_visit_is_claimed_by_first_starter(service, admin, officer, second_officer, clock):
    visit = _create(service, admin, clock)
    started = service.start(second_officer, visit.visit_id)
    assert started.assigned_to == second_officer.account_id

    with pytest.raises(AuthorizationError):
        service.complete(officer, visit.visit_id, report="not mine")


def test_assigned_visit_rejects_other_officer(service, admin, officer, second_officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)
    with pytest.raises(AuthorizationError):
        service.start(second_officer, visit.visit_id)


def test_complete_requires_report_and_caps_photos(service, admin, officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id, photos=(PNG, PNG))
    service.start(officer, visit.visit_id)

    with pytest.raises(ValidationError):
        service.complete(officer, visit.visit_id, report="   ")
    with pytest.raises(ValidationError) as exc:
        service.complete(officer, visit.visit_id, report="ok", photos=(PNG,) * 4)
    assert exc.value.code == "too_many_photos"

    done = service.complete(officer, visit.visit_id, report="ok", photos=(PNG,))
    assert len(done.photos) == 3


def test_is_overdue_flips_with_clock_only(service, admin, clock):
    visit = _create(service, admin, clock)
    before = visit.to_dict(now=clock())
    assert before["isOverdue"] is False

    clock.advance(hours=2)
    after = service.get_visit(admin, visit.visit_id).to_dict(now=clock())
    assert after["isOverdue"] is True
    assert {k: v for k, v in after.items() if k != "isOverdue"} == {
        k: v for k, v in before.items() if k != "isOverdue"
    }


def test_create_rules(service, admin, officer, bdo, clock):
    with pytest.raises(AuthorizationError):
        _create(service, officer, clock)
    with pytest.raises(ValidationError) as exc:
        _create(service, admin, clock, deadline=clock() - timedelta(minutes=1))
    assert exc.value.code == "past_deadline"
    with pytest.raises(ValidationError) as exc:
        _create(service, admin, clock, posted_to="Sheriff")
    assert exc.value.code == "bad_designation"
    with pytest.raises(ValidationError) as exc:
        _create(service, admin, clock, assigned_to=bdo.account_id)
    assert exc.value.code == "bad_assignee"

    visit = _create(service, admin, clock, posted_to="  tahsildar ", deadline="2026-03-03T09:00:00Z")
    assert visit.posted_to == "Tahsildar"


def test_update_only_explicit_fields_while_open(service, admin, officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)

    updated = service.update_visit(admin, visit.visit_id, {"place": "Collectorate"})
    assert updated.place == "Collectorate"
    assert updated.location == visit.location

    with pytest.raises(ValidationError) as exc:
        service.update_visit(admin, visit.visit_id, {"status": "approved"})
    assert exc.value.code == "unknown_field"

    service.start(officer, visit.visit_id)
    with pytest.raises(InvalidTransitionError):
        service.update_visit(admin, visit.visit_id, {"place": "Elsewhere"})


def test_repost_overdue_visit(service, container, admin, clock):
    visit = _create(service, admin, clock)
    clock.advance(hours=3)
    container.overdue_sweeper.sweep()
    assert service.get_visit(admin, visit.visit_id).status == VisitStatus.OVERDUE

    with pytest.raises(ValidationError):
        service.repost(admin, visit.visit_id, new_deadline=clock() - timedelta(seconds=1))
    reposted = service.repost(admin, visit.visit_id, new_deadline=clock() + timedelta(days=1))
    assert reposted.status == VisitStatus.PENDING


def test_missing_visit(service, admin):
    with pytest.raises(NotFoundError):
        service.get_visit(admin, 999)


SERVICE_EVENTS = ("start", "complete", "submit", "approve", "reject", "repost")
ILLEGAL_CALLS = [
    (event, status)
    for event in SERVICE_EVENTS
    for status in VisitStatus
    if status not in lifecycle.TRANSITIONS[event].sources
]


@pytest.mark.parametrize("event,status", ILLEGAL_CALLS, ids=[f"{e}-from-{s.value}" for e, s in ILLEGAL_CALLS])
def test_illegal_transition_leaves_visit_untouched(service, container, admin, officer, clock, event, status):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)
    repo = container.visits_repo
    repo.rows[visit.visit_id] = replace(visit, status=status)
    before = repo.get_by_id(visit.visit_id)

    calls = {
        "start": lambda: service.start(officer, visit.visit_id),
        "complete": lambda: service.complete(officer, visit.visit_id, report="done"),
        "submit": lambda: service.submit_for_approval(officer, visit.visit_id),
        "approve": lambda: service.approve(admin, visit.visit_id),
        "reject": lambda: service.reject(admin, visit.visit_id, reason="incomplete"),
        "repost": lambda: service.repost(admin, visit.visit_id, new_deadline=clock() + timedelta(days=1)),
    }
    with pytest.raises(InvalidTransitionError) as exc:
        calls[event]()
    assert exc.value.actual == status.value
    assert repo.get_by_id(visit.visit_id) == before


def test_start_after_deadline_settles_visit_as_overdue(service, admin, officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)
    clock.advance(hours=2)

    with pytest.raises(InvalidTransitionError) as exc:
        service.start(officer, visit.visit_id)
    assert exc.value.actual == "overdue"

    current = service.get_visit(admin, visit.visit_id)
    assert current.status == VisitStatus.OVERDUE
    assert current.started_at is None


def test_complete_after_deadline_settles_visit_as_overdue(service, admin, officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)
    service.start(officer, visit.visit_id)
    clock.advance(hours=2)

    with pytest.raises(InvalidTransitionError) as exc:
        service.complete(officer, visit.visit_id, report="late")
    assert exc.value.actual == "overdue"

    current = service.get_visit(admin, visit.visit_id)
    assert current.status == VisitStatus.OVERDUE
    assert current.report is None
    assert current.completed_at is None


def test_retargeting_assigned_visit_checks_the_assignee(service, admin, officer, clock):
    visit = _create(service, admin, clock, assigned_to=officer.account_id)

    with pytest.raises(ValidationError) as exc:
        service.update_visit(admin, visit.visit_id, {"posted_to": "Block Development Officer (BDO)"})
    assert exc.value.code == "bad_assignee"

    current = service.get_visit(admin, visit.visit_id)
    assert current.posted_to == "Tahsildar"
    assert service.start(officer, visit.visit_id).status == VisitStatus.IN_PROGRESS


def test_retargeting_unassigned_visit_hands_it_to_new_designation(service, admin, officer, bdo, clock):
    visit = _create(service, admin, clock)

    updated = service.update_visit(admin, visit.visit_id, {"posted_to": "block development officer (bdo)"})
    assert updated.posted_to == "Block Development Officer (BDO)"

    with pytest.raises(AuthorizationError):
        service.start(officer, visit.visit_id)
    assert service.start(bdo, visit.visit_id).assigned_to == bdo.account_id


def test_retargeting_loses_to_concurrent_assignment(service, container, admin, officer, clock, monkeypatch):
    visit = _create(service, admin, clock)
    repo = container.visits_repo
    stale = repo.get_by_id(visit.visit_id)
    repo.rows[visit.visit_id] = replace(visit, assigned_to=officer.account_id)

    original = repo.get_by_id
    reads = iter([stale])
    monkeypatch.setattr(repo, "get_by_id", lambda visit_id, **kw: next(reads, None) or original(visit_id, **kw))

    with pytest.raises(ConflictError) as exc:
        service.update_visit(admin, visit.visit_id, {"posted_to": "Block Development Officer (BDO)"})
    assert exc.value.code == "assignee_changed"
    assert repo.get_by_id(visit.visit_id).posted_to == "Tahsildar"


def test_overdue_visit_gets_new_deadline_only_through_repost(service, container, admin, clock):
    visit = _create(service, admin, clock)
    clock.advance(hours=3)
    container.overdue_sweeper.sweep()

    with pytest.raises(InvalidTransitionError) as exc:
        service.update_visit(admin, visit.visit_id, {"deadline": clock() + timedelta(days=1)})
    assert exc.value.actual == "overdue"
    assert exc.value.expected == ("pending",)
    assert service.get_visit(admin, visit.visit_id).deadline == visit.deadline

    renamed = service.update_visit(admin, visit.visit_id, {"place": "Sub-Collectorate"})
    assert renamed.place == "Sub-Collectorate"
    assert renamed.status == VisitStatus.OVERDUE


def test_pending_visit_can_be_rescheduled(service, admin, clock):
    visit = _create(service, admin, clock)
    later = clock() + timedelta(days=2)

    updated = service.update_visit(admin, visit.visit_id, {"deadline": later})
    assert updated.deadline == later
    assert updated.status == VisitStatus.PENDING


def test_update_rejects_non_text_values(service, admin, clock):
    visit = _create(service, admin, clock)
    for changes in ({"place": 5}, {"posted_to": 7}, {"instructions": ["a"]}):
        with pytest.raises(ValidationError) as exc:
            service.update_visit(admin, visit.visit_id, changes)
        assert exc.value.code == "bad_type"
    assert service.get_visit(admin, visit.visit_id) == visit
