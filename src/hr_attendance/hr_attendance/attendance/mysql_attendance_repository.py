from __future__ import annotations

from datetime import date
from typing import Any, Dict, Mapping, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, translate_integrity_errors
from .model import AttendanceFilter, AttendanceRecord, AttendanceRow, NewAttendance
from .repository import UPDATABLE_FIELDS, AttendanceRepository

_RECORD_COLUMNS = """
    a.attendance_id, a.employee_id, a.work_date, a.check_in_time, a.check_out_time, a.status,
    a.overtime_hours, a.notes, a.project_id, a.created_by, a.updated_by, a.created_at, a.updated_at
"""

_INSERT = """
    INSERT INTO attendances(
        employee_id, work_date, check_in_time, check_out_time, status,
        overtime_hours, notes, project_id, created_by
    )
    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        employee_id=str(r["employee_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        check_in_time=normalize_mysql_time(r.get("check_in_time")),
        check_out_time=normalize_mysql_time(r.get("check_out_time")),
        overtime_hours=float(r.get("overtime_hours") or 0),
        notes=r.get("notes"),
        project_id=r.get("project_id"),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _insert_params(new: NewAttendance) -> tuple:
    return (
        new.employee_id,
        new.work_date,
        new.check_in_time,
        new.check_out_time,
        new.status.value,
        new.overtime_hours,
        new.notes,
        new.project_id,
        new.created_by,
    )


def _duplicate_message(new: NewAttendance) -> str:
    return f"Attendance record already exists for employee {new.employee_id} on {new.work_date.isoformat()}"


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM attendances a WHERE a.attendance_id=%s AND a.deleted_at IS NULL",
                (int(attendance_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendances a
                WHERE a.employee_id=%s AND a.work_date=%s AND a.deleted_at IS NULL
                """,
                (employee_id, work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def find_by_employee_and_range(
        self, employee_id: str, start_date: date, end_date: date
    ) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendances a
                WHERE a.employee_id=%s AND a.work_date BETWEEN %s AND %s AND a.deleted_at IS NULL
                ORDER BY a.work_date ASC
                """,
                (employee_id, start_date, end_date),
            )
            return [_to_record(r) for r in fetchall(cur)]

    @staticmethod
    def _where(filters: AttendanceFilter) -> tuple[str, list[object]]:
        clauses = ["a.deleted_at IS NULL"]
        params: list[object] = []

        if filters.employee_id is not None:
            clauses.append("a.employee_id=%s")
            params.append(filters.employee_id)
        if filters.department_id is not None:
            clauses.append("e.department_id=%s")
            params.append(int(filters.department_id))
        if filters.project_id is not None:
            clauses.append("a.project_id=%s")
            params.append(int(filters.project_id))
        if filters.statuses:
            clauses.append("a.status IN (" + ",".join(["%s"] * len(filters.statuses)) + ")")
            params.extend(s.value for s in filters.statuses)
        if filters.start_date is not None:
            clauses.append("a.work_date >= %s")
            params.append(filters.start_date)
        if filters.end_date is not None:
            clauses.append("a.work_date <= %s")
            params.append(filters.end_date)

        return " AND ".join(clauses), params

    def find(
        self,
        filters: AttendanceFilter,
        *,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceRow]:
        where, params = self._where(filters)
        paging = ""
        if limit is not None:
            paging = "LIMIT %s OFFSET %s"
            params.extend([int(limit), int(offset or 0)])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT
                    {_RECORD_COLUMNS},
                    CONCAT(e.first_name, ' ', e.last_name) AS employee_name,
                    e.department_id, d.department_name
                FROM attendances a
                JOIN employees e ON e.employee_id = a.employee_id
                LEFT JOIN departments d ON d.department_id = e.department_id
                WHERE {where}
                ORDER BY a.work_date DESC, a.employee_id ASC
                {paging}
                """,
                tuple(params),
            )
            return [
                AttendanceRow(
                    record=_to_record(r),
                    employee_name=r.get("employee_name"),
                    department_id=r.get("department_id"),
                    department_name=r.get("department_name"),
                )
                for r in fetchall(cur)
            ]

    def count(self, filters: AttendanceFilter) -> int:
        where, params = self._where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total
                FROM attendances a
                JOIN employees e ON e.employee_id = a.employee_id
                WHERE {where}
                """,
                tuple(params),
            )
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def create(self, new: NewAttendance) -> AttendanceRecord:
        return self.create_many([new])[0]

    def create_many(self, items: Sequence[NewAttendance]) -> Sequence[AttendanceRecord]:
        ids: list[int] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for new in items:
                with translate_integrity_errors(_duplicate_message(new)):
                    cur.execute(_INSERT, _insert_params(new))
                ids.append(int(cur.lastrowid))

            if not ids:
                return []
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendances a
                WHERE a.attendance_id IN ({",".join(["%s"] * len(ids))})
                ORDER BY a.work_date ASC
                """,
                tuple(ids),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def update(self, attendance_id: int, fields: Mapping[str, Any]) -> Optional[AttendanceRecord]:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Not updatable: {sorted(unknown)}")

        if fields:
            assignments = ", ".join(f"{name}=%s" for name in fields)
            values = [v.value if isinstance(v, AttendanceStatus) else v for v in fields.values()]
            with db_cursor(self._conn_factory) as (_, cur):
                with translate_integrity_errors(f"Attendance record {attendance_id} collides with an existing record"):
                    cur.execute(
                        f"UPDATE attendances SET {assignments} WHERE attendance_id=%s AND deleted_at IS NULL",
                        (*values, int(attendance_id)),
                    )
        return self.get_by_id(attendance_id)

    def soft_delete(self, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendances SET deleted_at=NOW() WHERE attendance_id=%s AND deleted_at IS NULL",
                (int(attendance_id),),
            )
            return cur.rowcount > 0
