"""Per-record working-time arithmetic.

Pure functions over anything shaped like an AttendanceRecord, so they can be
used on stored rows and on in-memory fakes alike. Shifts never cross midnight:
a check-out earlier than the check-in is rejected when the record is written.
"""

from __future__ import annotations

from datetime import time
from decimal import ROUND_HALF_UP, Decimal

from ..common.datetime_utils import seconds_of_day
from ..core.constants import STANDARD_WORKDAY_HOURS, WORKDAY_START
from ..core.enums import AttendanceStatus


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def worked_hours(record) -> float:
    if record.check_in_time is None or record.check_out_time is None:
        return 0.0
    seconds = seconds_of_day(record.check_out_time) - seconds_of_day(record.check_in_time)
    return round2(max(seconds, 0) / 3600)


def is_late(record, *, workday_start: time = WORKDAY_START) -> bool:
    # Only a Present record can be late; a Late/HalfDay/... status is a decision already made.
    if record.status != AttendanceStatus.PRESENT or record.check_in_time is None:
        return False
    return record.check_in_time > workday_start


def late_minutes(record, *, workday_start: time = WORKDAY_START) -> int:
    if not is_late(record, workday_start=workday_start):
        return 0
    seconds = seconds_of_day(record.check_in_time) - seconds_of_day(workday_start)
    return int(Decimal(seconds / 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def total_work_time(record) -> float:
    return round2(worked_hours(record) + float(record.overtime_hours or 0))


def split_regular_overtime(hours: float, *, standard_hours: float = STANDARD_WORKDAY_HOURS) -> tuple[float, float]:
    """Up to `standard_hours` count as regular, the excess as overtime."""
    regular = min(hours, standard_hours)
    return round2(regular), round2(max(hours - standard_hours, 0))


def record_has_valid_times(check_in: time | None, check_out: time | None) -> bool:
    if check_in is None or check_out is None:
        return True
    return check_out > check_in
