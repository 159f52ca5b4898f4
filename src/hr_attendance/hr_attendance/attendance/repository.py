from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Protocol, Sequence

from .model import AttendanceFilter, AttendanceRecord, AttendanceRow, NewAttendance

# Columns a caller may change after creation; employee and date are fixed.
UPDATABLE_FIELDS = frozenset(
    {"status", "check_in_time", "check_out_time", "overtime_hours", "notes", "project_id", "updated_by"}
)


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find_by_employee_and_range(
        self, employee_id: str, start_date: date, end_date: date
    ) -> Sequence[AttendanceRecord]:
        """Live records in [start_date, end_date], oldest first."""

        raise NotImplementedError

    def find(
        self,
        filters: AttendanceFilter,
        *,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceRow]:
        """Newest first (work_date DESC, employee_id ASC)."""

        raise NotImplementedError

    def count(self, filters: AttendanceFilter) -> int:
        raise NotImplementedError

    def create(self, new: NewAttendance) -> AttendanceRecord:
        """Raises ConflictError when a live record exists for (employee, date)."""

        raise NotImplementedError

    def create_many(self, items: Sequence[NewAttendance]) -> Sequence[AttendanceRecord]:
        """All-or-nothing insert of several records in one transaction."""

        raise NotImplementedError

    def update(self, attendance_id: int, fields: Mapping[str, Any]) -> Optional[AttendanceRecord]:
        """Apply a subset of UPDATABLE_FIELDS; None when the record does not exist."""

        raise NotImplementedError

    def soft_delete(self, attendance_id: int) -> bool:
        raise NotImplementedError
