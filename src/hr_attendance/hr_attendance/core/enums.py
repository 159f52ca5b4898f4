from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Daily attendance status stored in the attendances table."""

    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"
    HALF_DAY = "Half Day"
    HOLIDAY = "Holiday"
    LEAVE = "Leave"
    SICK_LEAVE = "Sick Leave"
    ANNUAL_LEAVE = "Annual Leave"
    OTHER_LEAVE = "Other Leave"
    EXCEPTION = "Exception"

    @property
    def is_leave(self) -> bool:
        return self in LEAVE_STATUSES

    @classmethod
    def parse(cls, value: object) -> "AttendanceStatus":
        """Accept either the stored value ("Half Day") or the member name ("HALF_DAY")."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        try:
            return cls(text)
        except ValueError:
            member = cls.__members__.get(text.upper().replace(" ", "_"))
            if member is None:
                raise
            return member


LEAVE_STATUSES = frozenset(
    {
        AttendanceStatus.LEAVE,
        AttendanceStatus.SICK_LEAVE,
        AttendanceStatus.ANNUAL_LEAVE,
        AttendanceStatus.OTHER_LEAVE,
    }
)

# Outcomes an exception report can be adjudicated to.
RESOLUTION_STATUSES = frozenset(
    {
        AttendanceStatus.PRESENT,
        AttendanceStatus.ABSENT,
        AttendanceStatus.LATE,
        AttendanceStatus.HALF_DAY,
    }
    | LEAVE_STATUSES
)


class EmployeeStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ON_LEAVE = "On Leave"


class MarkAction(str, Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
