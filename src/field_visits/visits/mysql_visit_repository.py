from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Sequence

from ..common.datetime_utils import from_db, to_db
from ..common.validators import escape_like, normalize_designation
from ..core.enums import VisitStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .lifecycle import MARK_OVERDUE, TRANSITION_FIELDS, Transition
from .model import NewVisit, Photo, Visit
from .repository import EDITABLE_FIELDS, SORTABLE_FIELDS, VisitFilter, VisitRepository

_COLUMNS = """
    visit_id, place, location, instructions, posted_to, deadline, status,
    assigned_to, created_by, created_at, started_at, completed_at, completed_by,
    submitted_at, submitted_by, approved_at, approved_by, rejected_at, rejected_by,
    rejection_reason, report
"""

_DATETIME_FIELDS = ("deadline",)


def _row_to_visit(row: dict, photos: Sequence[Photo] = ()) -> Visit:
    return Visit(
        visit_id=int(row["visit_id"]),
        place=row["place"],
        location=row["location"],
        instructions=row.get("instructions"),
        posted_to=row["posted_to"],
        deadline=from_db(row["deadline"]),
        status=VisitStatus(row["status"]),
        created_at=from_db(row["created_at"]),
        assigned_to=row.get("assigned_to"),
        created_by=row.get("created_by"),
        started_at=from_db(row.get("started_at")),
        completed_at=from_db(row.get("completed_at")),
        completed_by=row.get("completed_by"),
        submitted_at=from_db(row.get("submitted_at")),
        submitted_by=row.get("submitted_by"),
        approved_at=from_db(row.get("approved_at")),
        approved_by=row.get("approved_by"),
        rejected_at=from_db(row.get("rejected_at")),
        rejected_by=row.get("rejected_by"),
        rejection_reason=row.get("rejection_reason"),
        report=row.get("report"),
        photos=tuple(photos),
    )


def _db_value(column: str, value: object) -> object:
    return to_db(value) if column in _DATETIME_FIELDS else value


def _insert_photos(cur, visit_id: int, photos: Sequence[Photo]) -> None:
    if not photos:
        return
    cur.execute("SELECT COALESCE(MAX(position), -1) AS pos FROM visit_photos WHERE visit_id=%s", (visit_id,))
    start = int(fetchone(cur)["pos"]) + 1
    cur.executemany(
        "INSERT INTO visit_photos(visit_id, position, content_type, data) VALUES(%s,%s,%s,%s)",
        [(visit_id, start + i, p.content_type, p.data) for i, p in enumerate(photos)],
    )


def _where(flt: VisitFilter) -> tuple[str, list[object]]:
    clauses = ["1=1"]
    params: list[object] = []

    if flt.statuses:
        clauses.append(f"status IN ({in_clause(flt.statuses)})")
        params.extend(s.value for s in flt.statuses)
    if flt.place:
        clauses.append("LOWER(place) LIKE LOWER(%s)")
        params.append(f"%{escape_like(flt.place)}%")
    if flt.location:
        clauses.append("LOWER(location) LIKE LOWER(%s)")
        params.append(f"%{escape_like(flt.location)}%")
    if flt.before is not None:
        clauses.append("deadline <= %s")
        params.append(to_db(flt.before))
    if flt.after is not None:
        clauses.append("deadline >= %s")
        params.append(to_db(flt.after))
    if flt.designation:
        clauses.append("LOWER(TRIM(posted_to)) = %s")
        params.append(normalize_designation(flt.designation))
    if flt.assigned_to is not None:
        clauses.append("assigned_to=%s")
        params.append(int(flt.assigned_to))

    return " AND ".join(clauses), params


class MySQLVisitRepository(VisitRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_visit(self, new: NewVisit) -> Visit:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO visits(place, location, instructions, posted_to, deadline, status,
                                   assigned_to, created_by, created_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    new.place,
                    new.location,
                    new.instructions,
                    new.posted_to,
                    to_db(new.deadline),
                    VisitStatus.PENDING.value,
                    new.assigned_to,
                    new.created_by,
                    to_db(new.created_at),
                ),
            )
            visit_id = int(cur.lastrowid)
            _insert_photos(cur, visit_id, new.photos)

        visit = self.get_by_id(visit_id)
        if visit is None:
            raise RuntimeError(f"Visit {visit_id} vanished right after insert")
        return visit

    def get_by_id(self, visit_id: int, *, with_photos: bool = True) -> Optional[Visit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM visits WHERE visit_id=%s", (int(visit_id),))
            row = fetchone(cur)
            if not row:
                return None
            photos: list[Photo] = []
            if with_photos:
                cur.execute(
                    "SELECT content_type, data FROM visit_photos WHERE visit_id=%s ORDER BY position",
                    (int(visit_id),),
                )
                photos = [Photo(content_type=r["content_type"], data=bytes(r["data"])) for r in fetchall(cur)]
            return _row_to_visit(row, photos)

    def apply_transition(
        self,
        visit_id: int,
        transition: Transition,
        *,
        at: datetime,
        actor_id: Optional[int] = None,
        fields: Optional[Mapping[str, object]] = None,
        photos: Sequence[Photo] = (),
        claim_for: Optional[int] = None,
    ) -> bool:
        fields = dict(fields or {})
        unknown = set(fields) - TRANSITION_FIELDS.get(transition.event, frozenset())
        if unknown:
            raise ValueError(f"Fields not writable by {transition.event}: {sorted(unknown)}")

        sets = ["status=%s"]
        params: list[object] = [transition.target.value]
        if transition.stamp_field:
            # Timestamps are written the first time a status is entered, never overwritten.
            sets.append(f"{transition.stamp_field}=COALESCE({transition.stamp_field}, %s)")
            params.append(to_db(at))
        if transition.actor_field:
            sets.append(f"{transition.actor_field}=%s")
            params.append(actor_id)
        for column, value in fields.items():
            sets.append(f"{column}=%s")
            params.append(_db_value(column, value))
        if claim_for is not None:
            sets.append("assigned_to=COALESCE(assigned_to, %s)")
            params.append(int(claim_for))

        where = f"visit_id=%s AND status IN ({in_clause(transition.sources)})"
        params.append(int(visit_id))
        params.extend(s.value for s in sorted(transition.sources, key=lambda s: s.value))
        if claim_for is not None:
            where += " AND (assigned_to IS NULL OR assigned_to=%s)"
            params.append(int(claim_for))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE visits SET {', '.join(sets)} WHERE {where}", tuple(params))
            if cur.rowcount == 0:
                return False
            # Same transaction: a failure here rolls the status change back too.
            _insert_photos(cur, int(visit_id), photos)
            return True

    def update_details(
        self,
        visit_id: int,
        *,
        sources: Sequence[VisitStatus],
        fields: Mapping[str, object],
        check_assignee: bool = False,
        expected_assignee: Optional[int] = None,
    ) -> bool:
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields not editable: {sorted(unknown)}")
        if not fields:
            return False

        where = f"visit_id=%s AND status IN ({in_clause(sources)})"
        where_params: list[object] = [int(visit_id), *[s.value for s in sources]]
        if check_assignee:
            # <=> is MySQL's NULL-safe equality.
            where += " AND assigned_to <=> %s"
            where_params.append(expected_assignee)

        sets = [f"{column}=%s" for column in fields]
        params = [_db_value(column, value) for column, value in fields.items()]

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE visits SET {', '.join(sets)} WHERE {where}", tuple(params + where_params))
            # rowcount is 0 for a matched row whose values did not change, so re-check.
            if cur.rowcount > 0:
                return True
            cur.execute(f"SELECT 1 AS ok FROM visits WHERE {where}", tuple(where_params))
            return fetchone(cur) is not None

    def search(
        self,
        flt: VisitFilter,
        *,
        sort_by: str = "deadline",
        descending: bool = False,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Visit], int]:
        if sort_by not in SORTABLE_FIELDS:
            raise ValueError(f"Unsupported sort field: {sort_by}")
        where, params = _where(flt)
        direction = "DESC" if descending else "ASC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM visits WHERE {where}", tuple(params))
            total = int(fetchone(cur)["total"])
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM visits
                WHERE {where}
                ORDER BY {sort_by} {direction}, visit_id {direction}
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_visit(r) for r in fetchall(cur)], total

    def count(self, flt: VisitFilter) -> int:
        where, params = _where(flt)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM visits WHERE {where}", tuple(params))
            return int(fetchone(cur)["total"])

    def mark_overdue(self, now: datetime) -> int:
        sources = sorted(MARK_OVERDUE.sources, key=lambda s: s.value)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE visits SET status=%s WHERE deadline < %s AND status IN ({in_clause(sources)})",
                (MARK_OVERDUE.target.value, to_db(now), *[s.value for s in sources]),
            )
            return int(cur.rowcount)
