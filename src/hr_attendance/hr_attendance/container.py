from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from .database.connection import DatabaseConnection, DBConfig
from .employees.mysql_department_repository import MySQLDepartmentRepository
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import DepartmentRepository, EmployeeRepository
from .reports.service import ReportService
from .requests.service import RequestService


@dataclass(frozen=True)
class Container:
    attendance_repo: AttendanceRepository
    employees_repo: EmployeeRepository
    departments_repo: DepartmentRepository

    attendance_service: AttendanceService
    request_service: RequestService
    report_service: ReportService


def build_services(
    *,
    attendance_repo: AttendanceRepository,
    employees_repo: EmployeeRepository,
    departments_repo: DepartmentRepository,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> Container:
    """Wire services over any repository implementation (MySQL or in-memory)."""

    paging = {"default_page_size": default_page_size, "max_page_size": max_page_size}
    return Container(
        attendance_repo=attendance_repo,
        employees_repo=employees_repo,
        departments_repo=departments_repo,
        attendance_service=AttendanceService(attendance_repo, employees_repo, departments_repo, **paging),
        request_service=RequestService(attendance_repo, employees_repo, **paging),
        report_service=ReportService(attendance_repo, employees_repo, departments_repo, **paging),
    )


def build_container(
    *,
    db_config: Mapping[str, Any],
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_mapping(db_config))
    return build_services(
        attendance_repo=MySQLAttendanceRepository(conn),
        employees_repo=MySQLEmployeeRepository(conn),
        departments_repo=MySQLDepartmentRepository(conn),
        default_page_size=default_page_size,
        max_page_size=max_page_size,
    )
