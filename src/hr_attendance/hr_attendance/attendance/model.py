from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Generic, Optional, Sequence, TypeVar

from ..core.enums import AttendanceStatus

T = TypeVar("T")


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one calendar day."""

    attendance_id: int
    employee_id: str
    work_date: date
    status: AttendanceStatus
    check_in_time: Optional[time] = None
    check_out_time: Optional[time] = None
    overtime_hours: float = 0.0
    notes: Optional[str] = None
    project_id: Optional[int] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class AttendanceRow:
    """Read-model for list/report queries (record joined with employee and department)."""

    record: AttendanceRecord
    employee_name: Optional[str]
    department_id: Optional[int]
    department_name: Optional[str]


@dataclass(frozen=True)
class NewAttendance:
    employee_id: str
    work_date: date
    status: AttendanceStatus
    check_in_time: Optional[time] = None
    check_out_time: Optional[time] = None
    overtime_hours: float = 0.0
    notes: Optional[str] = None
    project_id: Optional[int] = None
    created_by: Optional[str] = None


@dataclass(frozen=True)
class AttendanceFilter:
    employee_id: Optional[str] = None
    department_id: Optional[int] = None
    project_id: Optional[int] = None
    statuses: Sequence[AttendanceStatus] = field(default_factory=tuple)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class Page(Generic[T]):
    items: Sequence[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    def meta(self) -> dict:
        return {"total": self.total, "page": self.page, "pageSize": self.page_size, "totalPages": self.total_pages}


@dataclass(frozen=True)
class BulkError:
    index: int
    employee_id: Optional[str]
    date: Optional[str]
    error: str


@dataclass(frozen=True)
class BulkResult:
    created: int
    failed: int
    errors: list[BulkError]
