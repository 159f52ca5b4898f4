from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import MAXYEAR, MINYEAR, date
from typing import Any, Optional, Sequence

from ..attendance.model import AttendanceFilter, AttendanceRow, Page
from ..attendance.repository import AttendanceRepository
from ..attendance.serializers import row_to_dict
from ..attendance.summary import AttendanceTotals, EmployeeSummary, summarize_records
from ..attendance.worktime import is_late, late_minutes, round2
from ..common.datetime_utils import inclusive_day_count, month_bounds
from ..common.validators import parse_page_args, require_date_range
from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..employees.model import Department, Employee
from ..employees.repository import DepartmentRepository, EmployeeRepository


@dataclass
class DepartmentTotals:
    department_id: Optional[int]
    department_name: Optional[str]
    employee_count: int = 0
    totals: AttendanceTotals = field(default_factory=AttendanceTotals)

    def add(self, summary: EmployeeSummary) -> None:
        self.employee_count += 1
        self.totals.merge(summary.totals)

    def to_dict(self) -> dict:
        return {
            "department_id": self.department_id,
            "department_name": self.department_name,
            "employee_count": self.employee_count,
            **self.totals.to_dict(),
        }


def _hours_stats(totals: AttendanceTotals, employee_count: int) -> dict:
    worked_days = totals.present_days + totals.half_days
    return {
        "total_hours": round2(totals.total_hours),
        "regular_hours": round2(totals.regular_hours),
        "overtime_hours": round2(totals.overtime_hours),
        "average_hours_per_employee": round2(totals.total_hours / employee_count) if employee_count else 0.0,
        "average_hours_per_day": round2(totals.total_hours / worked_days) if worked_days else 0.0,
    }


class ReportService:
    """Multi-employee views built from per-employee summaries.

    Department totals are folded from the per-employee counts and their rates
    recomputed, so every employee-day weighs the same.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        departments: DepartmentRepository,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self._attendance = attendance
        self._employees = employees
        self._departments = departments
        self._default_page_size = int(default_page_size)
        self._max_page_size = int(max_page_size)

    def _require_department(self, department_id: Optional[int]) -> Optional[Department]:
        if department_id is None:
            return None
        department = self._departments.get_by_id(int(department_id))
        if not department:
            raise NotFoundError(f"Department {department_id} does not exist")
        return department

    def _department_names(self) -> dict[int, str]:
        return {d.department_id: d.department_name for d in self._departments.list_all()}

    def _employee_summaries(
        self, start_date: date, end_date: date, department_id: Optional[int]
    ) -> list[EmployeeSummary]:
        employees: Sequence[Employee] = self._employees.list_active(department_id=department_id)
        rows = self._attendance.find(
            AttendanceFilter(department_id=department_id, start_date=start_date, end_date=end_date)
        )

        by_employee: dict[str, list] = defaultdict(list)
        for row in rows:
            by_employee[row.record.employee_id].append(row.record)

        names = self._department_names()
        summaries = []
        for employee in employees:
            records = sorted(by_employee.get(employee.employee_id, []), key=lambda r: r.work_date)
            summaries.append(
                EmployeeSummary(
                    employee=employee,
                    start_date=start_date,
                    end_date=end_date,
                    totals=summarize_records(records, start_date, end_date),
                    records=records,
                    department_name=names.get(employee.department_id),
                )
            )
        return summaries

    @staticmethod
    def _fold(summaries: Sequence[EmployeeSummary]) -> tuple[AttendanceTotals, list[DepartmentTotals]]:
        overall = AttendanceTotals()
        departments: dict[Optional[int], DepartmentTotals] = {}
        for summary in summaries:
            overall.merge(summary.totals)
            dept_id = summary.employee.department_id
            if dept_id not in departments:
                departments[dept_id] = DepartmentTotals(dept_id, summary.department_name)
            departments[dept_id].add(summary)
        ordered = sorted(departments.values(), key=lambda d: (d.department_id is None, d.department_id or 0))
        return overall, ordered

    def monthly_report(self, *, year: int, month: int, department_id: Optional[int] = None) -> dict:
        if not 1 <= int(month) <= 12:
            raise ValidationError("month must be between 1 and 12")
        if not MINYEAR <= int(year) <= MAXYEAR:
            raise ValidationError(f"year must be between {MINYEAR} and {MAXYEAR}")
        department = self._require_department(department_id)
        start, end = month_bounds(year, month)

        summaries = self._employee_summaries(start, end, department_id)
        overall, departments = self._fold(summaries)
        return {
            "year": year,
            "month": month,
            "period": {"start_date": start, "end_date": end, "total_days": inclusive_day_count(start, end)},
            "department_id": department.department_id if department else None,
            "department_name": department.department_name if department else None,
            "employee_count": len(summaries),
            "totals": overall.to_dict(),
            "departments": [d.to_dict() for d in departments],
            "employees": [s.to_dict(include_records=False) for s in summaries],
        }

    def late_attendance_report(
        self, *, start_date: date, end_date: date, page: Any = None, page_size: Any = None
    ) -> tuple[dict, Page[dict]]:
        require_date_range(start_date, end_date)
        page_n, size_n = parse_page_args(
            page, page_size, default_size=self._default_page_size, max_size=self._max_page_size
        )

        rows: Sequence[AttendanceRow] = self._attendance.find(
            AttendanceFilter(statuses=(AttendanceStatus.PRESENT,), start_date=start_date, end_date=end_date)
        )
        late_rows = [r for r in rows if is_late(r.record)]

        total_minutes = 0
        max_minutes = 0
        by_department: dict[Optional[int], dict] = {}
        for row in late_rows:
            minutes = late_minutes(row.record)
            total_minutes += minutes
            max_minutes = max(max_minutes, minutes)
            dept = by_department.setdefault(
                row.department_id,
                {"department_id": row.department_id, "department_name": row.department_name, "late_count": 0},
            )
            dept["late_count"] += 1

        most_late = None
        if by_department:
            # Ties go to the lowest department id; rows without a department sort last.
            most_late = min(
                by_department.values(),
                key=lambda d: (-d["late_count"], d["department_id"] is None, d["department_id"] or 0),
            )

        statistics = {
            "start_date": start_date,
            "end_date": end_date,
            "total_late_incidents": len(late_rows),
            "total_late_minutes": total_minutes,
            "average_late_minutes": round2(total_minutes / len(late_rows)) if late_rows else 0.0,
            "max_late_minutes": max_minutes,
            "most_late_department": most_late,
            "departments": sorted(by_department.values(), key=lambda d: (-d["late_count"], d["department_id"] or 0)),
        }

        offset = (page_n - 1) * size_n
        items = [row_to_dict(r) for r in late_rows[offset : offset + size_n]]
        return statistics, Page(items=items, total=len(late_rows), page=page_n, page_size=size_n)

    def department_stats(
        self, *, start_date: date, end_date: date, department_id: Optional[int] = None
    ) -> dict:
        require_date_range(start_date, end_date)
        self._require_department(department_id)

        summaries = self._employee_summaries(start_date, end_date, department_id)
        overall, departments = self._fold(summaries)

        def breakdown(totals: AttendanceTotals, employee_count: int) -> dict:
            return {
                "attendance": {
                    "working_days": totals.working_days,
                    "present_days": totals.present_days,
                    "absent_days": totals.absent_days,
                    "half_days": totals.half_days,
                    "leave_days": totals.leave_days,
                    "holidays": totals.holidays,
                    "exception_days": totals.exception_days,
                    "attendance_rate": totals.attendance_rate,
                },
                "punctuality": {
                    "late_days": totals.late_days,
                    "on_time_days": totals.present_days - totals.late_days,
                    "total_late_minutes": totals.total_late_minutes,
                    "max_late_minutes": totals.max_late_minutes,
                    "punctuality_rate": totals.punctuality_rate,
                },
                "working_hours": _hours_stats(totals, employee_count),
            }

        return {
            "period": {"start_date": start_date, "end_date": end_date, "total_days": inclusive_day_count(start_date, end_date)},
            "overall": {"employee_count": len(summaries), **breakdown(overall, len(summaries))},
            "departments": [
                {
                    "department_id": d.department_id,
                    "department_name": d.department_name,
                    "employee_count": d.employee_count,
                    **breakdown(d.totals, d.employee_count),
                }
                for d in departments
            ],
        }
