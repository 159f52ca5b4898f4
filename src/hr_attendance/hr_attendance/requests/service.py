"""Leave applications and exceptional-attendance reports.

Neither has its own table: a leave application is one attendance record per
day carrying a leave status, and an exception report is an attendance record
parked in the Exception status until someone resolves it.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Sequence

from ..attendance.model import AttendanceFilter, AttendanceRecord, AttendanceRow, NewAttendance, Page
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import iter_days, parse_date_field
from ..common.validators import parse_page_args, require_date_range, require_non_empty, require_status
from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.enums import LEAVE_STATUSES, RESOLUTION_STATUSES, AttendanceStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository

logger = logging.getLogger(__name__)


def _append_note(existing: Optional[str], addition: Optional[str]) -> Optional[str]:
    addition = (addition or "").strip()
    if not addition:
        return existing
    if not existing:
        return addition
    return f"{existing}\n{addition}"


class RequestService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self._attendance = attendance
        self._employees = employees
        self._default_page_size = int(default_page_size)
        self._max_page_size = int(max_page_size)

    def _require_employee(self, employee_id: Any) -> Employee:
        employee_id = (str(employee_id) if employee_id is not None else "").strip()
        if not employee_id:
            raise ValidationError("employee_id is required")
        employee = self._employees.get_by_id(employee_id)
        if not employee:
            raise NotFoundError(f"Employee {employee_id} does not exist")
        return employee

    def _require_record(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError(f"Attendance record {attendance_id} does not exist")
        return record

    @staticmethod
    def _leave_status(value: Any, field_name: str) -> AttendanceStatus:
        status = require_status(value, field_name)
        if status not in LEAVE_STATUSES:
            allowed = ", ".join(sorted(s.value for s in LEAVE_STATUSES))
            raise ValidationError(f"{field_name} must be one of: {allowed}")
        return status

    # -- leave -----------------------------------------------------------------

    def create_leave_application(
        self,
        *,
        employee_id: Any,
        start_date: Any,
        end_date: Any,
        leave_type: Any,
        reason: Any,
        created_by: Optional[str] = None,
    ) -> Sequence[AttendanceRecord]:
        employee = self._require_employee(employee_id)
        start = parse_date_field(start_date, "start_date")
        end = parse_date_field(end_date, "end_date")
        require_date_range(start, end)
        status = self._leave_status(leave_type, "leave_type")
        reason = require_non_empty(reason, "reason")

        taken = self._attendance.find_by_employee_and_range(employee.employee_id, start, end)
        if taken:
            days = ", ".join(r.work_date.isoformat() for r in taken)
            raise ConflictError(f"Attendance already recorded for employee {employee.employee_id} on: {days}")

        records = self._attendance.create_many(
            [
                NewAttendance(
                    employee_id=employee.employee_id,
                    work_date=day,
                    status=status,
                    notes=reason,
                    created_by=created_by,
                )
                for day in iter_days(start, end)
            ]
        )
        logger.info(
            "Leave application (%s) created for employee %s: %s to %s, %s day(s)",
            status.value,
            employee.employee_id,
            start,
            end,
            len(records),
        )
        return records

    def update_leave_application(
        self, attendance_id: int, *, status: Any, updated_by: Optional[str] = None
    ) -> AttendanceRecord:
        record = self._require_record(attendance_id)
        if not record.status.is_leave:
            raise ValidationError(f"Attendance record {attendance_id} is not a leave record")
        new_status = self._leave_status(status, "status")

        fields: dict[str, Any] = {"status": new_status}
        if updated_by:
            fields["updated_by"] = updated_by
        updated = self._attendance.update(record.attendance_id, fields)
        if not updated:
            raise NotFoundError(f"Attendance record {attendance_id} does not exist")
        logger.info("Leave record %s changed %s -> %s", attendance_id, record.status.value, new_status.value)
        return updated

    def get_employee_leave_applications(
        self,
        employee_id: Any,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: Any = None,
        page_size: Any = None,
    ) -> Page[AttendanceRow]:
        employee = self._require_employee(employee_id)
        if start_date and end_date:
            require_date_range(start_date, end_date)
        page_n, size_n = parse_page_args(
            page, page_size, default_size=self._default_page_size, max_size=self._max_page_size
        )

        filters = AttendanceFilter(
            employee_id=employee.employee_id,
            statuses=tuple(sorted(LEAVE_STATUSES, key=lambda s: s.value)),
            start_date=start_date,
            end_date=end_date,
        )
        total = self._attendance.count(filters)
        rows = self._attendance.find(filters, offset=(page_n - 1) * size_n, limit=size_n)
        return Page(items=rows, total=total, page=page_n, page_size=size_n)

    # -- exceptions ------------------------------------------------------------

    def report_exception(
        self,
        *,
        employee_id: Any,
        work_date: Any,
        reason: Any,
        proof: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> tuple[AttendanceRecord, bool]:
        """Park the day in the Exception status. Returns (record, created)."""

        employee = self._require_employee(employee_id)
        day = parse_date_field(work_date, "date")
        reason = require_non_empty(reason, "reason")
        proof_text = str(proof).strip() if proof is not None else ""
        notes = _append_note(reason, f"Proof: {proof_text}" if proof_text else None)

        existing = self._attendance.get_for_employee_and_date(employee.employee_id, day)
        if not existing:
            record = self._attendance.create(
                NewAttendance(
                    employee_id=employee.employee_id,
                    work_date=day,
                    status=AttendanceStatus.EXCEPTION,
                    notes=notes,
                    created_by=created_by,
                )
            )
            logger.info("Exception reported for employee %s on %s (record %s)", employee.employee_id, day, record.attendance_id)
            return record, True

        # The prior status is overwritten, only this log line keeps it.
        logger.warning(
            "Exception report overwrites record %s for employee %s on %s (previous status %s)",
            existing.attendance_id,
            employee.employee_id,
            day,
            existing.status.value,
        )
        updated = self._attendance.update(
            existing.attendance_id,
            {"status": AttendanceStatus.EXCEPTION, "notes": notes, "updated_by": created_by},
        )
        if not updated:
            raise NotFoundError(f"Attendance record {existing.attendance_id} does not exist")
        return updated, False

    def resolve_exception(
        self,
        attendance_id: int,
        *,
        status: Any,
        notes: Any = None,
        updated_by: Optional[str] = None,
    ) -> AttendanceRecord:
        record = self._require_record(attendance_id)
        if record.status != AttendanceStatus.EXCEPTION:
            raise ValidationError(f"Attendance record {attendance_id} is not awaiting exception review")

        final_status = require_status(status)
        if final_status not in RESOLUTION_STATUSES:
            raise ValidationError(f"An exception cannot be resolved as {final_status.value}")

        resolution = (str(notes).strip() if notes is not None else "") or None
        updated = self._attendance.update(
            record.attendance_id,
            {
                "status": final_status,
                "notes": _append_note(record.notes, f"Resolution: {resolution}" if resolution else None),
                "updated_by": updated_by,
            },
        )
        if not updated:
            raise NotFoundError(f"Attendance record {attendance_id} does not exist")
        logger.info("Exception on record %s resolved as %s", attendance_id, final_status.value)
        return updated
