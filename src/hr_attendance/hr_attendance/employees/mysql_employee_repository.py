from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.enums import EmployeeStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeRepository

_COLUMNS = "employee_id, first_name, last_name, department_id, position_id, status"


def _to_employee(row: Dict[str, Any]) -> Employee:
    return Employee(
        employee_id=str(row["employee_id"]),
        first_name=row["first_name"],
        last_name=row["last_name"],
        department_id=row.get("department_id"),
        position_id=row.get("position_id"),
        status=EmployeeStatus(row.get("status") or EmployeeStatus.ACTIVE.value),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE employee_id=%s", (employee_id,))
            row = fetchone(cur)
            return _to_employee(row) if row else None

    def list_active(self, *, department_id: Optional[int] = None) -> Sequence[Employee]:
        clauses = ["status=%s"]
        params: list[object] = [EmployeeStatus.ACTIVE.value]
        if department_id is not None:
            clauses.append("department_id=%s")
            params.append(int(department_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM employees WHERE {' AND '.join(clauses)} ORDER BY employee_id",
                tuple(params),
            )
            return [_to_employee(r) for r in fetchall(cur)]
