from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Department
from .repository import DepartmentRepository


class MySQLDepartmentRepository(DepartmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, department_id: int) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT department_id, department_name FROM departments WHERE department_id=%s",
                (int(department_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Department(department_id=int(r["department_id"]), department_name=r["department_name"])

    def list_all(self) -> Sequence[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT department_id, department_name FROM departments ORDER BY department_name")
            rows = fetchall(cur)
            return [Department(department_id=int(r["department_id"]), department_name=r["department_name"]) for r in rows]
