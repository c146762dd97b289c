from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_caller, json_body, token_required
from ..container import Container
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.exceptions import ValidationError
from .catalog import VisitQuery, parse_int_arg
from .model import Photo

# camelCase wire names -> service field names for PUT /api/visits/<id>.
_EDIT_KEYS = {
    "place": "place",
    "location": "location",
    "instructions": "instructions",
    "postedTo": "posted_to",
    "deadline": "deadline",
}


def _photos_from(data: dict) -> tuple[Photo, ...]:
    raw = data.get("photos") or []
    if not isinstance(raw, list) or not all(isinstance(p, dict) for p in raw):
        raise ValidationError("photos must be a list of {contentType, data} objects", code="bad_photo")
    return tuple(Photo.from_payload(p) for p in raw)


def register(app: Flask, container: Container) -> None:
    auth_required = token_required(container.account_service)
    visits = container.visit_service
    catalog = container.visit_catalog

    def _visit_response(visit, status: int = 200):
        body = {"success": True, "visit": visit.to_dict(now=container.clock(), include_photos=True)}
        return jsonify(body), status

    def _page_args():
        return (
            parse_int_arg(request.args.get("page"), "page", 1),
            parse_int_arg(request.args.get("limit"), "limit", DEFAULT_PAGE_SIZE),
        )

    @app.route("/api/visits", methods=["POST"], endpoint="create_visit")
    @auth_required
    def create_visit():
        data = json_body()
        assigned_to = data.get("assignedTo")
        visit = visits.create_visit(
            current_caller(),
            place=data.get("place", ""),
            location=data.get("location", ""),
            posted_to=data.get("postedTo", ""),
            deadline=data.get("deadline"),
            instructions=data.get("instructions"),
            assigned_to=parse_int_arg(str(assigned_to), "assignedTo", 0) if assigned_to not in (None, "") else None,
            photos=_photos_from(data),
        )
        return _visit_response(visit, 201)

    @app.route("/api/visits", methods=["GET"], endpoint="list_visits")
    @auth_required
    def list_visits():
        page = catalog.search(current_caller(), VisitQuery.from_args(request.args))
        return jsonify(page.to_dict(now=container.clock()))

    @app.route("/api/visits/counts", methods=["GET"], endpoint="visit_counts")
    @auth_required
    def visit_counts():
        return jsonify({"success": True, **catalog.counts(current_caller())})

    @app.route("/api/visits/pending-approvals", methods=["GET"], endpoint="pending_approvals")
    @auth_required
    def pending_approvals():
        page, limit = _page_args()
        result = catalog.pending_approvals(current_caller(), page=page, limit=limit)
        return jsonify(result.to_dict(now=container.clock()))

    @app.route("/api/visits/approved", methods=["GET"], endpoint="approved_visits")
    @auth_required
    def approved_visits():
        args = request.args.to_dict()
        args.setdefault("sortOrder", "desc")
        result = catalog.approved_visits(current_caller(), VisitQuery.from_args(args))
        return jsonify(result.to_dict(now=container.clock()))

    @app.route("/api/visits/overdue", methods=["GET"], endpoint="overdue_visits")
    @auth_required
    def overdue_visits():
        page, limit = _page_args()
        result = catalog.overdue_visits(current_caller(), page=page, limit=limit)
        return jsonify(result.to_dict(now=container.clock()))

    @app.route("/api/visits/sweep-overdue", methods=["POST"], endpoint="sweep_overdue")
    @auth_required
    def sweep_overdue():
        updated = container.overdue_sweeper.sweep_as(current_caller())
        return jsonify({"success": True, "updated": updated})

    @app.route("/api/visits/<int:visit_id>", methods=["GET"], endpoint="get_visit")
    @auth_required
    def get_visit(visit_id: int):
        return _visit_response(visits.get_visit(current_caller(), visit_id))

    @app.route("/api/visits/<int:visit_id>", methods=["PUT"], endpoint="update_visit")
    @auth_required
    def update_visit(visit_id: int):
        changes = {_EDIT_KEYS.get(k, k): v for k, v in json_body().items()}
        return _visit_response(visits.update_visit(current_caller(), visit_id, changes))

    @app.route("/api/visits/<int:visit_id>/start", methods=["POST"], endpoint="start_visit")
    @auth_required
    def start_visit(visit_id: int):
        return _visit_response(visits.start(current_caller(), visit_id))

    @app.route("/api/visits/<int:visit_id>/complete", methods=["POST"], endpoint="complete_visit")
    @auth_required
    def complete_visit(visit_id: int):
        data = json_body()
        visit = visits.complete(current_caller(), visit_id, report=data.get("report", ""), photos=_photos_from(data))
        return _visit_response(visit)

    @app.route("/api/visits/<int:visit_id>/submit", methods=["POST"], endpoint="submit_visit")
    @auth_required
    def submit_visit(visit_id: int):
        return _visit_response(visits.submit_for_approval(current_caller(), visit_id))

    @app.route("/api/visits/<int:visit_id>/approve", methods=["POST"], endpoint="approve_visit")
    @auth_required
    def approve_visit(visit_id: int):
        return _visit_response(visits.approve(current_caller(), visit_id))

    @app.route("/api/visits/<int:visit_id>/reject", methods=["POST"], endpoint="reject_visit")
    @auth_required
    def reject_visit(visit_id: int):
        data = json_body()
        visit = visits.reject(current_caller(), visit_id, reason=data.get("reason") or data.get("rejectionReason", ""))
        return _visit_response(visit)

    @app.route("/api/visits/<int:visit_id>/repost", methods=["POST"], endpoint="repost_visit")
    @auth_required
    def repost_visit(visit_id: int):
        data = json_body()
        return _visit_response(visits.repost(current_caller(), visit_id, new_deadline=data.get("deadline")))
