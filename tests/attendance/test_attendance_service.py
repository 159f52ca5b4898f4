from __future__ import annotations

from datetime import date, datetime, time

import pytest

from src.hr_attendance.hr_attendance.attendance.model import AttendanceFilter
from src.hr_attendance.hr_attendance.attendance.service import AttendanceService
from src.hr_attendance.hr_attendance.core.enums import AttendanceStatus, EmployeeStatus
from src.hr_attendance.hr_attendance.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.hr_attendance.hr_attendance.employees.model import Department
from tests.fakes import make_employee, make_stores


@pytest.fixture()
def stores():
    return make_stores(
        make_employee("E001", department_id=1),
        make_employee("E002", department_id=2),
        departments=[Department(1, "Engineering"), Department(2, "Sales")],
    )


@pytest.fixture()
def service(stores):
    attendance, employees, departments = stores
    return AttendanceService(attendance, employees, departments, default_page_size=2)


def test_create_defaults_to_absent(service):
    rec = service.create_record({"employee_id": "E001", "date": "2024-03-04"})

    assert rec.status == AttendanceStatus.ABSENT
    assert rec.overtime_hours == 0.0
    assert rec.work_date == date(2024, 3, 4)


def test_create_parses_times_and_status(service):
    rec = service.create_record(
        {
            "employee_id": "E001",
            "date": "2024-03-04",
            "status": "Present",
            "check_in_time": "08:55",
            "check_out_time": "18:00:00",
            "overtime_hours": "1.5",
            "notes": "  on site  ",
        }
    )

    assert rec.check_in_time == time(8, 55)
    assert rec.check_out_time == time(18, 0)
    assert rec.overtime_hours == 1.5
    assert rec.notes == "on site"


def test_second_record_for_same_day_conflicts(service, stores):
    service.create_record({"employee_id": "E001", "date": "2024-03-04", "status": "Present"})

    with pytest.raises(ConflictError):
        service.create_record({"employee_id": "E001", "date": "2024-03-04", "status": "Absent"})

    # never overwritten
    assert [r.status for r in stores[0].all_live()] == [AttendanceStatus.PRESENT]


def test_conflict_is_a_validation_error(service):
    service.create_record({"employee_id": "E001", "date": "2024-03-04"})
    with pytest.raises(ValidationError):
        service.create_record({"employee_id": "E001", "date": "2024-03-04"})


def test_create_rejects_unknown_employee(service):
    with pytest.raises(ValidationError, match="does not exist"):
        service.create_record({"employee_id": "NOPE", "date": "2024-03-04"})


@pytest.mark.parametrize(
    "payload",
    [
        {"check_in_time": "18:00", "check_out_time": "09:00"},
        {"check_in_time": "09:00", "check_out_time": "09:00"},
        {"overtime_hours": -1},
        {"status": "Sleeping"},
        {"check_in_time": "25:99"},
    ],
)
def test_create_validation(service, payload):
    with pytest.raises(ValidationError):
        service.create_record({"employee_id": "E001", "date": "2024-03-04", **payload})


def test_create_requires_date(service):
    with pytest.raises(ValidationError, match="date"):
        service.create_record({"employee_id": "E001"})


def test_update_unknown_record(service):
    with pytest.raises(NotFoundError):
        service.update_record(999, {"status": "Present"})


def test_update_revalidates_against_stored_times(service):
    rec = service.create_record(
        {"employee_id": "E001", "date": "2024-03-04", "status": "Present", "check_in_time": "09:00"}
    )

    with pytest.raises(ValidationError):
        service.update_record(rec.attendance_id, {"check_out_time": "08:30"})

    updated = service.update_record(rec.attendance_id, {"check_out_time": "17:30", "updated_by": "HR1"})
    assert updated.check_in_time == time(9, 0)
    assert updated.check_out_time == time(17, 30)
    assert updated.updated_by == "HR1"


def test_update_rejects_fixed_fields(service):
    rec = service.create_record({"employee_id": "E001", "date": "2024-03-04"})
    with pytest.raises(ValidationError, match="work_date"):
        service.update_record(rec.attendance_id, {"work_date": "2024-03-05"})


def test_update_can_clear_a_time(service):
    rec = service.create_record(
        {"employee_id": "E001", "date": "2024-03-04", "check_in_time": "09:00", "check_out_time": "17:00"}
    )
    updated = service.update_record(rec.attendance_id, {"check_out_time": None})
    assert updated.check_out_time is None


def test_delete_is_idempotent(service):
    rec = service.create_record({"employee_id": "E001", "date": "2024-03-04"})

    assert service.delete_record(rec.attendance_id) is True
    assert service.delete_record(rec.attendance_id) is False
    assert service.delete_record(12345) is False
    with pytest.raises(NotFoundError):
        service.get_record(rec.attendance_id)


def test_deleted_day_can_be_recorded_again(service):
    rec = service.create_record({"employee_id": "E001", "date": "2024-03-04"})
    service.delete_record(rec.attendance_id)

    again = service.create_record({"employee_id": "E001", "date": "2024-03-04", "status": "Present"})
    assert again.attendance_id != rec.attendance_id


def test_bulk_collects_failures(service):
    result = service.bulk_create(
        [
            {"employee_id": "E001", "date": "2024-03-04", "status": "Present"},
            {"employee_id": "E001", "date": "2024-03-04", "status": "Present"},
            {"employee_id": "E404", "date": "2024-03-04", "status": "Present"},
            {"employee_id": "E002", "date": "2024-03-04", "status": "Absent"},
            {"employee_id": "E002", "date": "not-a-date"},
        ]
    )

    assert result.created == 2
    assert result.failed == 3
    assert [e.index for e in result.errors] == [1, 2, 4]
    assert result.errors[0].employee_id == "E001"
    assert result.errors[0].date == "2024-03-04"
    assert "already exists" in result.errors[0].error


def test_find_by_date_range_filters(service):
    service.create_record({"employee_id": "E001", "date": "2024-03-04", "status": "Present"})
    service.create_record({"employee_id": "E002", "date": "2024-03-04", "status": "Absent"})
    service.create_record({"employee_id": "E002", "date": "2024-03-10", "status": "Present"})

    rows = service.find_by_date_range(date(2024, 3, 1), date(2024, 3, 5))
    assert {r.record.employee_id for r in rows} == {"E001", "E002"}

    rows = service.find_by_date_range(date(2024, 3, 1), date(2024, 3, 31), department_id=2)
    assert [r.record.work_date for r in rows] == [date(2024, 3, 10), date(2024, 3, 4)]
    assert rows[0].department_name == "Sales"

    rows = service.find_by_date_range(date(2024, 3, 1), date(2024, 3, 31), status=AttendanceStatus.PRESENT)
    assert len(rows) == 2

    with pytest.raises(ValidationError):
        service.find_by_date_range(date(2024, 3, 5), date(2024, 3, 1))


def test_find_by_employee_and_range(service):
    service.create_record({"employee_id": "E001", "date": "2024-03-05"})
    service.create_record({"employee_id": "E001", "date": "2024-03-04"})

    records = service.find_by_employee_and_range("E001", date(2024, 3, 1), date(2024, 3, 31))
    assert [r.work_date for r in records] == [date(2024, 3, 4), date(2024, 3, 5)]

    with pytest.raises(NotFoundError):
        service.find_by_employee_and_range("E404", date(2024, 3, 1), date(2024, 3, 31))


def test_list_records_paginates(service):
    for day in (1, 2, 3):
        service.create_record({"employee_id": "E001", "date": f"2024-03-0{day}"})

    page = service.list_records(AttendanceFilter(employee_id="E001"), page=2)

    assert page.total == 3
    assert page.page_size == 2
    assert page.total_pages == 2
    assert [r.record.work_date for r in page.items] == [date(2024, 3, 1)]


def test_summarize_unknown_employee(service):
    with pytest.raises(NotFoundError):
        service.summarize("E404", date(2024, 3, 1), date(2024, 3, 31))


def test_summarize_includes_records_and_department(service):
    service.create_record(
        {"employee_id": "E001", "date": "2024-03-04", "status": "Present", "check_in_time": "09:15", "check_out_time": "17:15"}
    )
    summary = service.summarize("E001", date(2024, 3, 1), date(2024, 3, 31))

    assert summary.department_name == "Engineering"
    assert summary.totals.total_days == 31
    assert summary.totals.late_days == 1
    data = summary.to_dict()
    assert data["records"][0]["late_minutes"] == 15
    assert data["records"][0]["work_hours"] == 8.0


def test_employee_detail_defaults_to_month_to_date(service, monkeypatch):
    from src.hr_attendance.hr_attendance.attendance import service as service_module

    monkeypatch.setattr(service_module, "now_local", lambda: datetime(2024, 3, 15, 12, 0))
    service.create_record({"employee_id": "E001", "date": "2024-03-04", "status": "Present"})
    service.create_record({"employee_id": "E001", "date": "2024-02-28", "status": "Present"})

    summary, page = service.employee_detail("E001")

    assert summary.start_date == date(2024, 3, 1)
    assert summary.end_date == date(2024, 3, 15)
    assert page.total == 1


def test_check_in_then_check_out(service):
    morning = datetime(2024, 3, 4, 8, 55, 12)
    rec = service.check_in("E001", now=morning)

    assert rec.status == AttendanceStatus.PRESENT
    assert rec.check_in_time == time(8, 55, 12)

    with pytest.raises(ConflictError):
        service.check_in("E001", now=morning)

    out = service.check_out("E001", now=datetime(2024, 3, 4, 18, 0))
    assert out.check_out_time == time(18, 0)

    with pytest.raises(ValidationError, match="Already"):
        service.check_out("E001", now=datetime(2024, 3, 4, 18, 5))


def test_check_out_without_check_in(service):
    with pytest.raises(ValidationError):
        service.check_out("E001", now=datetime(2024, 3, 4, 18, 0))


def test_mark_parses_action(service):
    rec, message = service.mark("E001", "check_in", "2024-03-04T09:20:00")
    assert message == "Checked in"
    assert rec.check_in_time == time(9, 20)

    with pytest.raises(ValidationError):
        service.mark("E001", "teleport")


def test_inactive_employee_still_resolvable():
    attendance, employees, departments = make_stores(make_employee("E009", status=EmployeeStatus.INACTIVE))
    service = AttendanceService(attendance, employees, departments)

    rec = service.create_record({"employee_id": "E009", "date": "2024-03-04"})
    assert rec.employee_id == "E009"


def test_bulk_keeps_going_after_a_storage_error(service, stores):
    import mysql.connector

    attendance = stores[0]
    attendance.fail_on_insert = date(2024, 3, 5)
    attendance.insert_error = mysql.connector.errors.IntegrityError(msg="FK fails", errno=1452)

    result = service.bulk_create(
        [
            {"employee_id": "E001", "date": "2024-03-04", "status": "Present"},
            {"employee_id": "E001", "date": "2024-03-05", "status": "Present", "project_id": 77},
            {"employee_id": "E001", "date": "2024-03-06", "status": "Present"},
        ]
    )

    assert result.created == 2
    assert result.failed == 1
    assert result.errors[0].index == 1
    assert result.errors[0].error == "Failed to store attendance record"
    assert [r.work_date for r in attendance.all_live()] == [date(2024, 3, 4), date(2024, 3, 6)]


@pytest.mark.parametrize("overtime", ["nan", "inf", "-inf", float("nan")])
def test_overtime_must_be_finite(service, overtime):
    with pytest.raises(ValidationError, match="finite"):
        service.create_record({"employee_id": "E001", "date": "2024-03-04", "overtime_hours": overtime})


def test_update_rejects_non_finite_overtime(service):
    rec = service.create_record({"employee_id": "E001", "date": "2024-03-04"})
    with pytest.raises(ValidationError):
        service.update_record(rec.attendance_id, {"overtime_hours": "nan"})


def test_check_out_when_record_vanishes(service, stores, monkeypatch):
    service.check_in("E001", now=datetime(2024, 3, 4, 9, 0))
    monkeypatch.setattr(stores[0], "update", lambda *args, **kwargs: None)

    with pytest.raises(NotFoundError):
        service.check_out("E001", now=datetime(2024, 3, 4, 17, 0))
