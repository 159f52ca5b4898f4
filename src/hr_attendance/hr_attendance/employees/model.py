from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import EmployeeStatus


@dataclass(frozen=True)
class Employee:
    """Read-only view of an employee; attendance never creates or deletes employees."""

    employee_id: str
    first_name: str
    last_name: str
    department_id: Optional[int]
    position_id: Optional[int]
    status: EmployeeStatus = EmployeeStatus.ACTIVE

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Department:
    department_id: int
    department_name: str
