"""Folding attendance records into counts, hours and rates.

Rates are always recomputed from the accumulated counts, never averaged from
per-employee rates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import inclusive_day_count
from ..core.constants import HALF_DAY_HOURS
from ..core.enums import AttendanceStatus
from ..employees.model import Employee
from .model import AttendanceRecord
from .serializers import record_to_dict
from .worktime import is_late, late_minutes, round2, split_regular_overtime, worked_hours

_WORKED_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.LATE})


def _rate(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return round2(numerator / denominator * 100)


@dataclass
class AttendanceTotals:
    total_days: int = 0
    working_days: int = 0
    present_days: int = 0
    absent_days: int = 0
    late_days: int = 0
    half_days: int = 0
    holidays: int = 0
    leave_days: int = 0
    exception_days: int = 0
    total_hours: float = 0.0
    regular_hours: float = 0.0
    overtime_hours: float = 0.0
    recorded_overtime_hours: float = 0.0
    total_late_minutes: int = 0
    max_late_minutes: int = 0

    def add(self, record: AttendanceRecord) -> None:
        status = record.status
        if status in _WORKED_STATUSES:
            self.present_days += 1
            if status == AttendanceStatus.LATE or is_late(record):
                self.late_days += 1
            minutes = late_minutes(record)
            self.total_late_minutes += minutes
            self.max_late_minutes = max(self.max_late_minutes, minutes)

            hours = worked_hours(record)
            regular, derived_overtime = split_regular_overtime(hours)
            recorded = float(record.overtime_hours or 0)
            self.total_hours += hours
            self.regular_hours += regular
            # Derived (>8h) overtime and the recorded overtime field are both counted.
            self.overtime_hours += derived_overtime + recorded
            self.recorded_overtime_hours += recorded
        elif status == AttendanceStatus.HALF_DAY:
            self.half_days += 1
            self.regular_hours += HALF_DAY_HOURS
        elif status == AttendanceStatus.HOLIDAY:
            self.holidays += 1
        elif status.is_leave:
            self.leave_days += 1
        elif status == AttendanceStatus.ABSENT:
            self.absent_days += 1
        elif status == AttendanceStatus.EXCEPTION:
            self.exception_days += 1

    def merge(self, other: "AttendanceTotals") -> None:
        for name in self.__dataclass_fields__:
            if name == "max_late_minutes":
                self.max_late_minutes = max(self.max_late_minutes, other.max_late_minutes)
            else:
                setattr(self, name, getattr(self, name) + getattr(other, name))

    @property
    def attendance_rate(self) -> float:
        return _rate(self.present_days + self.half_days, self.working_days)

    @property
    def punctuality_rate(self) -> float:
        return _rate(self.present_days - self.late_days, self.present_days)

    def to_dict(self) -> dict:
        return {
            "total_days": self.total_days,
            "working_days": self.working_days,
            "present_days": self.present_days,
            "absent_days": self.absent_days,
            "late_days": self.late_days,
            "half_days": self.half_days,
            "holidays": self.holidays,
            "leave_days": self.leave_days,
            "exception_days": self.exception_days,
            "total_hours": round2(self.total_hours),
            "regular_hours": round2(self.regular_hours),
            "overtime_hours": round2(self.overtime_hours),
            "recorded_overtime_hours": round2(self.recorded_overtime_hours),
            "attendance_rate": self.attendance_rate,
            "punctuality_rate": self.punctuality_rate,
        }


def summarize_records(records: Iterable[AttendanceRecord], start_date: date, end_date: date) -> AttendanceTotals:
    totals = AttendanceTotals()
    for record in records:
        totals.add(record)
    totals.total_days = inclusive_day_count(start_date, end_date)
    totals.working_days = totals.total_days - totals.holidays
    return totals


@dataclass(frozen=True)
class EmployeeSummary:
    employee: Employee
    start_date: date
    end_date: date
    totals: AttendanceTotals
    records: Sequence[AttendanceRecord] = field(default_factory=tuple)
    department_name: Optional[str] = None

    def to_dict(self, *, include_records: bool = True) -> dict:
        data = {
            "employee_id": self.employee.employee_id,
            "employee_name": self.employee.full_name,
            "department_id": self.employee.department_id,
            "department_name": self.department_name,
            "period": {"start_date": self.start_date, "end_date": self.end_date},
            **self.totals.to_dict(),
        }
        if include_records:
            data["records"] = [record_to_dict(r) for r in self.records]
        return data
