from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from ..core.exceptions import ValidationError

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current UTC time.

    Note: Wrapped so services can take a clock and tests can freeze it.
    """
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values (MySQL DATETIME columns come back naive)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_datetime(value: Optional[str], field_name: str) -> datetime:
    raw = (value or "").strip()
    if not raw:
        raise ValidationError(f"{field_name} is required", code="missing_field")
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(raw))
    except ValueError:
        raise ValidationError(f"Invalid {field_name} format, use ISO-8601", code="bad_datetime")


def to_db(value: Optional[datetime]) -> Optional[datetime]:
    """Store datetimes as naive UTC."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def from_db(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value is not None else None
