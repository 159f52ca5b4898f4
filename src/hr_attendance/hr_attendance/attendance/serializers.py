from __future__ import annotations

from .model import AttendanceRecord, AttendanceRow
from .worktime import is_late, late_minutes, total_work_time, worked_hours


def record_to_dict(r: AttendanceRecord) -> dict:
    return {
        "attendance_id": r.attendance_id,
        "employee_id": r.employee_id,
        "date": r.work_date,
        "check_in_time": r.check_in_time,
        "check_out_time": r.check_out_time,
        "status": r.status,
        "work_hours": worked_hours(r),
        "overtime_hours": r.overtime_hours,
        "total_work_time": total_work_time(r),
        "is_late": is_late(r),
        "late_minutes": late_minutes(r),
        "notes": r.notes,
        "project_id": r.project_id,
        "created_by": r.created_by,
        "updated_by": r.updated_by,
    }


def row_to_dict(row: AttendanceRow) -> dict:
    data = record_to_dict(row.record)
    data["employee_name"] = row.employee_name or "Unknown employee"
    data["department_id"] = row.department_id
    data["department_name"] = row.department_name or "Unknown department"
    return data
