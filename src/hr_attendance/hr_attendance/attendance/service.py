from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local, parse_date_field, parse_datetime_field, parse_time_field
from ..common.validators import (
    parse_page_args,
    require_date_range,
    require_non_negative,
    require_status,
)
from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.enums import AttendanceStatus, MarkAction
from ..core.exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from ..employees.model import Employee
from ..employees.repository import DepartmentRepository, EmployeeRepository
from .model import AttendanceFilter, AttendanceRecord, AttendanceRow, BulkError, BulkResult, NewAttendance, Page
from .repository import UPDATABLE_FIELDS, AttendanceRepository
from .summary import EmployeeSummary, summarize_records
from .worktime import record_has_valid_times

logger = logging.getLogger(__name__)


def _optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        departments: DepartmentRepository | None = None,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self._attendance = attendance
        self._employees = employees
        self._departments = departments
        self._default_page_size = int(default_page_size)
        self._max_page_size = int(max_page_size)

    # -- lookups ---------------------------------------------------------------

    def get_employee(self, employee_id: Any) -> Employee:
        employee = self._employees.get_by_id(str(employee_id))
        if not employee:
            raise NotFoundError(f"Employee {employee_id} does not exist")
        return employee

    def department_name(self, department_id: Optional[int]) -> Optional[str]:
        if department_id is None or not self._departments:
            return None
        department = self._departments.get_by_id(int(department_id))
        return department.department_name if department else None

    def get_record(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError(f"Attendance record {attendance_id} does not exist")
        return record

    # -- record store ----------------------------------------------------------

    def _build_new(self, payload: Mapping[str, Any], *, default_status: AttendanceStatus | None = None) -> NewAttendance:
        employee_id = _optional_text(payload.get("employee_id"))
        if not employee_id:
            raise ValidationError("employee_id is required")
        work_date = parse_date_field(payload.get("date"), "date")

        raw_status = payload.get("status")
        if raw_status in (None, "") and default_status is not None:
            status = default_status
        else:
            status = require_status(raw_status)

        check_in = parse_time_field(payload.get("check_in_time"), "check_in_time")
        check_out = parse_time_field(payload.get("check_out_time"), "check_out_time")
        if not record_has_valid_times(check_in, check_out):
            raise ValidationError("Check-in time must be before check-out time")

        overtime = payload.get("overtime_hours")
        return NewAttendance(
            employee_id=employee_id,
            work_date=work_date,
            status=status,
            check_in_time=check_in,
            check_out_time=check_out,
            overtime_hours=0.0 if overtime in (None, "") else require_non_negative(overtime, "overtime_hours"),
            notes=_optional_text(payload.get("notes")),
            project_id=_optional_int(payload.get("project_id"), "project_id"),
            created_by=_optional_text(payload.get("created_by")),
        )

    def _insert(self, new: NewAttendance) -> AttendanceRecord:
        if not self._employees.get_by_id(new.employee_id):
            raise ValidationError(f"Employee {new.employee_id} does not exist")
        if self._attendance.get_for_employee_and_date(new.employee_id, new.work_date):
            raise ConflictError(
                f"Attendance record already exists for employee {new.employee_id} on {new.work_date.isoformat()}"
            )
        # The unique key on (employee, date) still guards against a concurrent insert.
        return self._attendance.create(new)

    def create_record(self, payload: Mapping[str, Any]) -> AttendanceRecord:
        record = self._insert(self._build_new(payload, default_status=AttendanceStatus.ABSENT))
        logger.info(
            "Attendance %s created for employee %s on %s (%s)",
            record.attendance_id,
            record.employee_id,
            record.work_date,
            record.status.value,
        )
        return record

    def update_record(self, attendance_id: int, changes: Mapping[str, Any]) -> AttendanceRecord:
        existing = self.get_record(attendance_id)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        fields: dict[str, Any] = {}
        for name, value in changes.items():
            if name == "status":
                fields[name] = require_status(value)
            elif name in ("check_in_time", "check_out_time"):
                fields[name] = parse_time_field(value, name)
            elif name == "overtime_hours":
                fields[name] = 0.0 if value in (None, "") else require_non_negative(value, name)
            elif name == "project_id":
                fields[name] = _optional_int(value, name)
            else:
                fields[name] = _optional_text(value)

        check_in = fields.get("check_in_time", existing.check_in_time)
        check_out = fields.get("check_out_time", existing.check_out_time)
        if not record_has_valid_times(check_in, check_out):
            raise ValidationError("Check-in time must be before check-out time")

        if not fields:
            return existing

        updated = self._attendance.update(existing.attendance_id, fields)
        if not updated:
            raise NotFoundError(f"Attendance record {attendance_id} does not exist")
        logger.info("Attendance %s updated (%s)", attendance_id, ", ".join(sorted(fields)))
        return updated

    def delete_record(self, attendance_id: int) -> bool:
        deleted = self._attendance.soft_delete(int(attendance_id))
        if deleted:
            logger.info("Attendance %s deleted", attendance_id)
        return deleted

    def bulk_create(self, items: Sequence[Mapping[str, Any]]) -> BulkResult:
        """Create each item independently; failures are collected, not raised."""
        created = 0
        errors: list[BulkError] = []
        for index, payload in enumerate(items):
            try:
                self._insert(self._build_new(payload))
                created += 1
                continue
            except DomainError as exc:
                logger.warning("Bulk attendance item %s rejected: %s", index, exc)
                message = str(exc)
            except Exception:
                # Earlier items are already committed; keep going and report this one.
                logger.exception("Bulk attendance item %s failed in storage", index)
                message = "Failed to store attendance record"
            errors.append(
                BulkError(
                    index=index,
                    employee_id=_optional_text(payload.get("employee_id")),
                    date=_optional_text(payload.get("date")),
                    error=message,
                )
            )
        logger.info("Bulk attendance: %s created, %s failed", created, len(errors))
        return BulkResult(created=created, failed=len(errors), errors=errors)

    # -- read paths ------------------------------------------------------------

    def find_by_employee_and_range(self, employee_id: Any, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        require_date_range(start_date, end_date)
        employee = self.get_employee(employee_id)
        return self._attendance.find_by_employee_and_range(employee.employee_id, start_date, end_date)

    def find_by_date_range(
        self,
        start_date: date,
        end_date: date,
        *,
        status: AttendanceStatus | None = None,
        department_id: Optional[int] = None,
        project_id: Optional[int] = None,
    ) -> Sequence[AttendanceRow]:
        require_date_range(start_date, end_date)
        filters = AttendanceFilter(
            department_id=department_id,
            project_id=project_id,
            statuses=(status,) if status else (),
            start_date=start_date,
            end_date=end_date,
        )
        return self._attendance.find(filters)

    def list_records(self, filters: AttendanceFilter, *, page: Any = None, page_size: Any = None) -> Page[AttendanceRow]:
        if filters.start_date and filters.end_date:
            require_date_range(filters.start_date, filters.end_date)
        page_n, size_n = parse_page_args(
            page, page_size, default_size=self._default_page_size, max_size=self._max_page_size
        )
        total = self._attendance.count(filters)
        rows = self._attendance.find(filters, offset=(page_n - 1) * size_n, limit=size_n)
        return Page(items=rows, total=total, page=page_n, page_size=size_n)

    # -- aggregation -----------------------------------------------------------

    def summarize(self, employee_id: Any, start_date: date, end_date: date) -> EmployeeSummary:
        require_date_range(start_date, end_date)
        employee = self.get_employee(employee_id)
        records = self._attendance.find_by_employee_and_range(employee.employee_id, start_date, end_date)
        return EmployeeSummary(
            employee=employee,
            start_date=start_date,
            end_date=end_date,
            totals=summarize_records(records, start_date, end_date),
            records=list(records),
            department_name=self.department_name(employee.department_id),
        )

    def employee_detail(
        self,
        employee_id: Any,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: Any = None,
        page_size: Any = None,
    ) -> tuple[EmployeeSummary, Page[AttendanceRow]]:
        """Statistics over the range plus one page of its records.

        Without a range the current month to date is used.
        """
        today = now_local().date()
        start_date = start_date or today.replace(day=1)
        end_date = end_date or max(today, start_date)

        summary = self.summarize(employee_id, start_date, end_date)
        records = self.list_records(
            AttendanceFilter(employee_id=summary.employee.employee_id, start_date=start_date, end_date=end_date),
            page=page,
            page_size=page_size,
        )
        return summary, records

    # -- check-in / check-out --------------------------------------------------

    def check_in(self, employee_id: Any, *, now: datetime | None = None) -> AttendanceRecord:
        now = now or now_local()
        employee = self.get_employee(employee_id)
        record = self._insert(
            NewAttendance(
                employee_id=employee.employee_id,
                work_date=now.date(),
                status=AttendanceStatus.PRESENT,
                check_in_time=now.time().replace(microsecond=0),
                created_by=employee.employee_id,
            )
        )
        logger.info("Employee %s checked in at %s", employee.employee_id, record.check_in_time)
        return record

    def check_out(self, employee_id: Any, *, now: datetime | None = None) -> AttendanceRecord:
        now = now or now_local()
        employee = self.get_employee(employee_id)

        record = self._attendance.get_for_employee_and_date(employee.employee_id, now.date())
        if not record or record.check_in_time is None:
            raise ValidationError("No check-in recorded for today")
        if record.check_out_time is not None:
            raise ValidationError("Already checked out today")

        check_out = now.time().replace(microsecond=0)
        if not record_has_valid_times(record.check_in_time, check_out):
            raise ValidationError("Check-out time must be after check-in time")

        updated = self._attendance.update(
            record.attendance_id, {"check_out_time": check_out, "updated_by": employee.employee_id}
        )
        if not updated:
            raise NotFoundError(f"Attendance record {record.attendance_id} does not exist")
        logger.info("Employee %s checked out at %s", employee.employee_id, check_out)
        return updated

    def mark(self, employee_id: Any, action: Any, timestamp: Any = None) -> tuple[AttendanceRecord, str]:
        try:
            mark_action = MarkAction(str(action or "").strip())
        except ValueError:
            raise ValidationError("action must be check_in or check_out")
        now = parse_datetime_field(timestamp, "timestamp")

        if mark_action == MarkAction.CHECK_IN:
            return self.check_in(employee_id, now=now), "Checked in"
        return self.check_out(employee_id, now=now), "Checked out"
