from __future__ import annotations

import re
from typing import Iterable, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

from ..core.exceptions import ValidationError

_WHITESPACE = re.compile(r"\s+")


def require_string(value: object, field_name: str) -> str:
    """Return `value` untouched (no stripping) if it is a non-empty str."""
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required", code="missing_field")
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", code="bad_type")
    return value


def require_non_empty(value: object, field_name: str) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", code="bad_type")
    if value is None or not value.strip():
        raise ValidationError(f"{field_name} is required", code="missing_field")
    return value.strip()


def optional_text(value: object, field_name: str) -> Optional[str]:
    """Stripped text, or None when absent or blank."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", code="bad_type")
    return value.strip() or None


def require_min_length(value: Optional[str], field_name: str, min_len: int, *, code: str = "too_short") -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters long", code=code)
    return value


def require_email(value: Optional[str]) -> str:
    """Return the normalized (lower-cased) address or raise ValidationError."""
    email = require_non_empty(value, "Email")
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError("Please provide a valid email address", code="bad_email")
    return email.lower()


def reject_unknown_fields(payload: Mapping[str, object], allowed: Iterable[str]) -> None:
    unknown = sorted(set(payload) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", code="unknown_field")


def normalize_designation(value: Optional[str]) -> str:
    """Collapse inner whitespace and case-fold, for designation comparisons."""
    return _WHITESPACE.sub(" ", (value or "").strip()).casefold()


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so caller text is matched literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
