from __future__ import annotations

from datetime import date, time

import pytest

from src.hr_attendance.hr_attendance.attendance.model import NewAttendance
from src.hr_attendance.hr_attendance.container import build_services
from src.hr_attendance.hr_attendance.core.enums import AttendanceStatus
from src.hr_attendance.hr_attendance.employees.model import Department
from src.hr_attendance.hr_attendance.main import create_app
from tests.fakes import make_employee, make_stores


@pytest.fixture()
def stores():
    return make_stores(
        make_employee("E001", department_id=1, name="Ana"),
        make_employee("E002", department_id=2, name="Bo"),
        departments=[Department(1, "Engineering"), Department(2, "Sales")],
    )


@pytest.fixture()
def client(stores, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    attendance, employees, departments = stores
    container = build_services(attendance_repo=attendance, employees_repo=employees, departments_repo=departments)
    app = create_app(container)
    return app.test_client()


def _seed(stores):
    attendance = stores[0]
    attendance.create(
        NewAttendance(
            employee_id="E001",
            work_date=date(2024, 3, 4),
            status=AttendanceStatus.PRESENT,
            check_in_time=time(9, 15),
            check_out_time=time(18, 0),
        )
    )
    attendance.create(NewAttendance(employee_id="E002", work_date=date(2024, 3, 4), status=AttendanceStatus.ABSENT))


def test_create_and_fetch_record(client):
    resp = client.post(
        "/api/attendances",
        json={"employee_id": "E001", "date": "2024-03-04", "status": "Present", "check_in_time": "08:55", "check_out_time": "18:00"},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["date"] == "2024-03-04"
    assert body["data"]["check_in_time"] == "08:55:00"
    assert body["data"]["status"] == "Present"
    assert body["data"]["work_hours"] == 9.08

    got = client.get(f"/api/attendances/{body['data']['attendance_id']}")
    assert got.status_code == 200
    assert got.get_json()["data"]["is_late"] is False


def test_duplicate_create_is_409(client):
    payload = {"employee_id": "E001", "date": "2024-03-04"}
    assert client.post("/api/attendances", json=payload).status_code == 201

    resp = client.post("/api/attendances", json=payload)
    assert resp.status_code == 409
    assert resp.get_json() == {"success": False, "message": "Attendance record already exists for employee E001 on 2024-03-04"}


def test_validation_errors_are_400(client):
    resp = client.post("/api/attendances", json={"employee_id": "E001", "date": "2024-03-04", "check_in_time": "18:00", "check_out_time": "08:00"})
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False

    assert client.post("/api/attendances", data="not json").status_code == 400


def test_missing_record_is_404(client):
    assert client.get("/api/attendances/42").status_code == 404
    assert client.put("/api/attendances/42", json={"status": "Present"}).status_code == 404
    assert client.delete("/api/attendances/42").status_code == 404


def test_update_and_delete(client, stores):
    _seed(stores)
    rec_id = stores[0].all_live()[1].attendance_id

    resp = client.put(f"/api/attendances/{rec_id}", json={"status": "Half Day"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "Half Day"

    assert client.delete(f"/api/attendances/{rec_id}").status_code == 200
    assert client.delete(f"/api/attendances/{rec_id}").status_code == 404


def test_list_with_filters_and_pagination(client, stores):
    _seed(stores)

    body = client.get("/api/attendances?startDate=2024-03-01&endDate=2024-03-31&pageSize=1").get_json()
    assert body["total"] == 2
    assert body["page"] == 1
    assert body["pageSize"] == 1
    assert len(body["data"]) == 1

    body = client.get("/api/attendances?date=2024-03-04&departmentId=2").get_json()
    assert [r["employee_id"] for r in body["data"]] == ["E002"]
    assert body["data"][0]["department_name"] == "Sales"

    body = client.get("/api/attendances?status=Present").get_json()
    assert [r["employee_name"] for r in body["data"]] == ["Ana E001"]

    assert client.get("/api/attendances?status=Bogus").status_code == 400
    assert client.get("/api/attendances?page=0").status_code == 400


def test_employee_detail_shape(client, stores):
    _seed(stores)

    resp = client.get("/api/attendances/employee/E001?startDate=2024-03-01&endDate=2024-03-31")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["employee_id"] == "E001"
    assert data["employee_name"] == "Ana E001"
    assert data["department_name"] == "Engineering"
    assert len(data["attendance_records"]) == 1
    assert data["attendance_records"][0]["late_minutes"] == 15
    assert data["statistics"]["late_days"] == 1
    assert data["statistics"]["total_days"] == 31
    assert data["pagination"]["total"] == 1

    assert client.get("/api/attendances/employee/E404").status_code == 404


def test_employee_summary(client, stores):
    _seed(stores)
    body = client.get("/api/attendances/employee/E001/summary?startDate=2024-03-01&endDate=2024-03-31&includeRecords=true").get_json()

    assert body["data"]["present_days"] == 1
    assert body["data"]["overtime_hours"] == 0.75
    assert len(body["data"]["records"]) == 1


def test_mark_check_in_and_out(client):
    resp = client.post("/api/attendances/employee/E001/mark", json={"action": "check_in", "timestamp": "2024-03-04T08:58:00"})
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Checked in"

    resp = client.post("/api/attendances/employee/E001/mark", json={"action": "check_out", "timestamp": "2024-03-04T17:30:00"})
    assert resp.get_json()["data"]["check_out_time"] == "17:30:00"

    assert client.post("/api/attendances/employee/E001/mark", json={"action": "nap"}).status_code == 400


def test_bulk_reports_per_item_errors(client):
    resp = client.post(
        "/api/attendances/bulk",
        json={
            "records": [
                {"employee_id": "E001", "date": "2024-03-04", "status": "Present"},
                {"employee_id": "E001", "date": "2024-03-04", "status": "Present"},
            ]
        },
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["created"] == 1
    assert data["failed"] == 1
    assert data["errors"][0]["index"] == 1

    assert client.post("/api/attendances/bulk", json={"records": []}).status_code == 400


def test_leave_round_trip(client):
    resp = client.post(
        "/api/attendances/leave",
        json={
            "employee_id": "E001",
            "start_date": "2024-05-06",
            "end_date": "2024-05-08",
            "leave_type": "Sick Leave",
            "reason": "Flu",
            "created_by": "HR1",
        },
    )
    assert resp.status_code == 201
    records = resp.get_json()["data"]
    assert [r["date"] for r in records] == ["2024-05-06", "2024-05-07", "2024-05-08"]

    resp = client.put(f"/api/attendances/leave/{records[0]['attendance_id']}", json={"status": "Annual Leave"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "Annual Leave"

    leaves = client.get("/api/attendances/employee/E001/leaves").get_json()
    assert leaves["total"] == 3

    again = client.post(
        "/api/attendances/leave",
        json={"employee_id": "E001", "start_date": "2024-05-08", "end_date": "2024-05-09", "leave_type": "Leave", "reason": "x"},
    )
    assert again.status_code == 409


def test_exception_report_and_resolve(client, stores):
    _seed(stores)

    resp = client.post(
        "/api/attendances/exception",
        json={"employee_id": "E002", "date": "2024-03-04", "reason": "Worked remotely", "proof": "vpn-log"},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["created"] is False
    assert body["data"]["status"] == "Exception"

    resp = client.put(f"/api/attendances/exception/{body['data']['attendance_id']}", json={"status": "Present", "notes": "ok"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "Present"

    resp = client.put(f"/api/attendances/exception/{body['data']['attendance_id']}", json={"status": "Present"})
    assert resp.status_code == 400


def test_reports_endpoints(client, stores):
    _seed(stores)

    monthly = client.get("/api/attendances/reports/monthly?year=2024&month=3").get_json()["data"]
    assert monthly["employee_count"] == 2
    assert monthly["period"]["start_date"] == "2024-03-01"

    late = client.get("/api/attendances/reports/late?startDate=2024-03-01&endDate=2024-03-31").get_json()["data"]
    assert late["statistics"]["total_late_incidents"] == 1
    assert late["statistics"]["most_late_department"]["department_name"] == "Engineering"

    stats = client.get("/api/attendances/statistics?startDate=2024-03-01&endDate=2024-03-31").get_json()["data"]
    assert [d["department_id"] for d in stats["departments"]] == [1, 2]

    assert client.get("/api/attendances/reports/monthly?year=2024&month=3&departmentId=9").status_code == 404


def test_unexpected_errors_are_500_without_details(client, stores, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("db password leaked")

    monkeypatch.setattr(stores[0], "count", boom)
    resp = client.get("/api/attendances")

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "Failed to load attendance records"}


def test_unknown_route_is_json_404(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_nan_overtime_is_rejected(client):
    resp = client.post("/api/attendances", json={"employee_id": "E001", "date": "2024-03-04", "overtime_hours": "nan"})
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_monthly_report_year_out_of_range_is_400(client):
    resp = client.get("/api/attendances/reports/monthly?year=10000&month=1")
    assert resp.status_code == 400
    assert "year" in resp.get_json()["message"]
