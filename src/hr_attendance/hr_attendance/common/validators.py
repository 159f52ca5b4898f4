from __future__ import annotations

import math
from datetime import date
from typing import Optional

from ..core.constants import MAX_PAGE_SIZE
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_date_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("endDate must be on or after startDate")


def require_status(value: object, field_name: str = "status") -> AttendanceStatus:
    try:
        return AttendanceStatus.parse(value)
    except ValueError:
        allowed = ", ".join(s.value for s in AttendanceStatus)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


def require_non_negative(value: object, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be a finite number")
    if number < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return number


def parse_positive_int(value: object, field_name: str, *, default: Optional[int] = None) -> int:
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"{field_name} is required")
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return number


def parse_page_args(
    page: object, page_size: object, *, default_size: int, max_size: int = MAX_PAGE_SIZE
) -> tuple[int, int]:
    page_n = parse_positive_int(page, "page", default=1)
    size_n = parse_positive_int(page_size, "pageSize", default=default_size)
    return page_n, min(size_n, max_size)
