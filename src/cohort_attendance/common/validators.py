from __future__ import annotations

import re
from typing import Optional

from ..core.constants import DEFAULT_COUNTRY_CODE, MAX_PHONE_DIGITS, MIN_PHONE_DIGITS
from ..core.exceptions import ValidationError

_EXTERNAL_ID = re.compile(r"^[A-Z0-9_-]+$")
_NON_DIGITS = re.compile(r"\D")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value.strip()) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters long")
    return value.strip()


def normalize_external_id(value: str) -> str:
    external_id = require_non_empty(value, "Student ID").upper()
    if not _EXTERNAL_ID.match(external_id):
        raise ValidationError("Student ID can only contain letters, numbers, hyphens and underscores")
    return external_id


def normalize_label(value: Optional[str]) -> Optional[str]:
    """Upper-case free-text labels (subject names, languages); blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value.upper() if value else None


def phone_digits(value: Optional[str]) -> Optional[str]:
    """Strip a phone number down to digits, or None when it cannot be dialled."""
    if not value:
        return None
    digits = _NON_DIGITS.sub("", value)
    if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        return None
    return digits


def require_phone(value: Optional[str]) -> Optional[str]:
    """Validate an optional guardian contact; keeps the original spelling."""
    if value is None or not value.strip():
        return None
    if phone_digits(value) is None:
        raise ValidationError(
            f"Please enter a valid phone number ({MIN_PHONE_DIGITS}-{MAX_PHONE_DIGITS} digits)"
        )
    return value.strip()


def format_international(value: Optional[str]) -> Optional[str]:
    """Digits with a country code; bare 10-digit numbers get the default one."""
    digits = phone_digits(value)
    if digits is None:
        return None
    if len(digits) == 10:
        return f"{DEFAULT_COUNTRY_CODE}{digits}"
    return digits
