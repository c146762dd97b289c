from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Optional

from ..common.datetime_utils import isoformat
from ..core.constants import ALLOWED_PHOTO_TYPES, MAX_PHOTO_BYTES, MAX_PHOTOS_PER_VISIT
from ..core.enums import VisitStatus
from ..core.exceptions import ValidationError

# Statuses for which a passed deadline no longer matters.
SETTLED_STATUSES = frozenset({VisitStatus.COMPLETED, VisitStatus.APPROVED})

STATUS_DISPLAY = {
    VisitStatus.PENDING: "Pending",
    VisitStatus.IN_PROGRESS: "In Progress",
    VisitStatus.COMPLETED: "Completed",
    VisitStatus.SUBMITTED: "Pending Approval",
    VisitStatus.APPROVED: "Approved",
    VisitStatus.REJECTED: "Rejected",
    VisitStatus.OVERDUE: "Overdue",
}


@dataclass(frozen=True)
class Photo:
    """Opaque image blob attached to a visit."""

    content_type: str
    data: bytes

    def as_data_url(self) -> str:
        return f"data:{self.content_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    @classmethod
    def from_payload(cls, item: Mapping[str, object]) -> "Photo":
        """Build from the JSON wire shape {"contentType": ..., "data": "<base64>"}."""
        content_type = str(item.get("contentType") or "").strip().lower()
        try:
            data = base64.b64decode(str(item.get("data") or ""), validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("Photo data must be base64 encoded", code="bad_photo")
        return cls(content_type=content_type, data=data)


def validate_photos(photos: Iterable[Photo]) -> tuple[Photo, ...]:
    photos = tuple(photos or ())
    if len(photos) > MAX_PHOTOS_PER_VISIT:
        raise ValidationError(f"At most {MAX_PHOTOS_PER_VISIT} photos are allowed", code="too_many_photos")
    for photo in photos:
        if photo.content_type not in ALLOWED_PHOTO_TYPES:
            raise ValidationError("Images only (jpeg, png, gif)", code="bad_photo")
        if not photo.data:
            raise ValidationError("Photo is empty", code="bad_photo")
        if len(photo.data) > MAX_PHOTO_BYTES:
            raise ValidationError("Each photo must be 5 MB or smaller", code="photo_too_large")
    return photos


@dataclass(frozen=True)
class Visit:
    visit_id: int
    place: str
    location: str
    instructions: Optional[str]
    posted_to: str
    deadline: datetime
    status: VisitStatus
    created_at: datetime
    assigned_to: Optional[int] = None
    created_by: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    submitted_at: Optional[datetime] = None
    submitted_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    report: Optional[str] = None
    photos: tuple[Photo, ...] = ()

    def is_overdue(self, now: datetime) -> bool:
        return self.deadline < now and self.status not in SETTLED_STATUSES

    def to_dict(self, *, now: datetime, include_photos: bool = False) -> dict:
        out = {
            "id": self.visit_id,
            "place": self.place,
            "location": self.location,
            "instructions": self.instructions,
            "postedTo": self.posted_to,
            "deadline": isoformat(self.deadline),
            "status": self.status.value,
            "statusDisplay": STATUS_DISPLAY[self.status],
            "isOverdue": self.is_overdue(now),
            "assignedTo": self.assigned_to,
            "createdBy": self.created_by,
            "createdAt": isoformat(self.created_at),
            "startedAt": isoformat(self.started_at),
            "completedAt": isoformat(self.completed_at),
            "completedBy": self.completed_by,
            "submittedAt": isoformat(self.submitted_at),
            "submittedBy": self.submitted_by,
            "approvedAt": isoformat(self.approved_at),
            "approvedBy": self.approved_by,
            "rejectedAt": isoformat(self.rejected_at),
            "rejectedBy": self.rejected_by,
            "report": self.report,
        }
        if self.status == VisitStatus.REJECTED:
            out["rejectionReason"] = self.rejection_reason
        if include_photos:
            out["photos"] = [p.as_data_url() for p in self.photos]
        return out


@dataclass(frozen=True)
class NewVisit:
    place: str
    location: str
    instructions: Optional[str]
    posted_to: str
    deadline: datetime
    created_by: int
    created_at: datetime
    assigned_to: Optional[int] = None
    photos: tuple[Photo, ...] = ()
