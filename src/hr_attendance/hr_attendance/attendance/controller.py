from __future__ import annotations

from datetime import date
from functools import wraps
from typing import Optional

from flask import Flask, request

from ..common.datetime_utils import now_local, parse_date_field
from ..common.http import domain_error_response, internal_error_response, ok
from ..common.validators import parse_positive_int, require_status
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from ..container import Container
from .model import AttendanceFilter
from .serializers import record_to_dict, row_to_dict


def _date_arg(name: str) -> Optional[date]:
    value = request.args.get(name)
    return parse_date_field(value, name) if value else None


def _int_arg(name: str) -> Optional[int]:
    value = request.args.get(name)
    return parse_positive_int(value, name) if value else None


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _range_args(*, default_to_month: bool = False) -> tuple[Optional[date], Optional[date]]:
    start, end = _date_arg("startDate"), _date_arg("endDate")
    if default_to_month:
        today = now_local().date()
        start = start or today.replace(day=1)
        end = end or max(today, start)
    return start, end


def register(app: Flask, container: Container) -> None:
    def api_errors(message: str):
        """Translate domain errors to 4xx and anything else to a logged 500."""

        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                try:
                    return view(*args, **kwargs)
                except DomainError as e:
                    return domain_error_response(e)
                except Exception as e:
                    return internal_error_response(e, message)

            return wrapper

        return decorator

    # -- list / create ---------------------------------------------------------

    @app.route("/api/attendances", methods=["GET"], endpoint="attendance_list")
    @api_errors("Failed to load attendance records")
    def attendance_list():
        single_day = _date_arg("date")
        start, end = _range_args()
        if single_day:
            start = end = single_day
        status = request.args.get("status")

        filters = AttendanceFilter(
            employee_id=request.args.get("employeeId") or None,
            department_id=_int_arg("departmentId"),
            project_id=_int_arg("projectId"),
            statuses=(require_status(status),) if status else (),
            start_date=start,
            end_date=end,
        )
        page = container.attendance_service.list_records(
            filters, page=request.args.get("page"), page_size=request.args.get("pageSize")
        )
        return ok([row_to_dict(r) for r in page.items], **page.meta())

    @app.route("/api/attendances", methods=["POST"], endpoint="attendance_create")
    @api_errors("Failed to create attendance record")
    def attendance_create():
        record = container.attendance_service.create_record(_json_body())
        return ok(record_to_dict(record), status=201, message="Attendance record created")

    @app.route("/api/attendances/bulk", methods=["POST"], endpoint="attendance_bulk")
    @api_errors("Failed to create attendance records")
    def attendance_bulk():
        items = _json_body().get("records")
        if not isinstance(items, list) or not items:
            raise ValidationError("records must be a non-empty list")
        if not all(isinstance(i, dict) for i in items):
            raise ValidationError("every record must be a JSON object")
        result = container.attendance_service.bulk_create(items)
        status = 201 if result.created else 400
        return ok(result, status=status, message=f"{result.created} created, {result.failed} failed")

    # -- single record ---------------------------------------------------------

    @app.route("/api/attendances/<int:attendance_id>", methods=["GET"], endpoint="attendance_detail")
    @api_errors("Failed to load attendance record")
    def attendance_detail(attendance_id: int):
        return ok(record_to_dict(container.attendance_service.get_record(attendance_id)))

    @app.route("/api/attendances/<int:attendance_id>", methods=["PUT"], endpoint="attendance_update")
    @api_errors("Failed to update attendance record")
    def attendance_update(attendance_id: int):
        record = container.attendance_service.update_record(attendance_id, _json_body())
        return ok(record_to_dict(record), message="Attendance record updated")

    @app.route("/api/attendances/<int:attendance_id>", methods=["DELETE"], endpoint="attendance_delete")
    @api_errors("Failed to delete attendance record")
    def attendance_delete(attendance_id: int):
        if not container.attendance_service.delete_record(attendance_id):
            raise NotFoundError(f"Attendance record {attendance_id} does not exist")
        return ok(message="Attendance record deleted")

    # -- per employee ----------------------------------------------------------

    @app.route("/api/attendances/employee/<employee_id>", methods=["GET"], endpoint="attendance_employee")
    @api_errors("Failed to load employee attendance")
    def attendance_employee(employee_id: str):
        start, end = _range_args()
        summary, page = container.attendance_service.employee_detail(
            employee_id,
            start_date=start,
            end_date=end,
            page=request.args.get("page"),
            page_size=request.args.get("pageSize"),
        )
        return ok(
            {
                "employee_id": summary.employee.employee_id,
                "employee_name": summary.employee.full_name,
                "department_name": summary.department_name,
                "attendance_records": [row_to_dict(r) for r in page.items],
                "statistics": summary.to_dict(include_records=False),
                "pagination": page.meta(),
            }
        )

    @app.route("/api/attendances/employee/<employee_id>/summary", methods=["GET"], endpoint="attendance_summary")
    @api_errors("Failed to summarize attendance")
    def attendance_summary(employee_id: str):
        start, end = _range_args(default_to_month=True)
        summary = container.attendance_service.summarize(employee_id, start, end)
        return ok(summary.to_dict(include_records=request.args.get("includeRecords") == "true"))

    @app.route("/api/attendances/employee/<employee_id>/leaves", methods=["GET"], endpoint="attendance_leaves")
    @api_errors("Failed to load leave applications")
    def attendance_leaves(employee_id: str):
        start, end = _range_args()
        page = container.request_service.get_employee_leave_applications(
            employee_id,
            start_date=start,
            end_date=end,
            page=request.args.get("page"),
            page_size=request.args.get("pageSize"),
        )
        return ok([row_to_dict(r) for r in page.items], **page.meta())

    @app.route("/api/attendances/employee/<employee_id>/mark", methods=["POST"], endpoint="attendance_mark")
    @api_errors("Failed to mark attendance")
    def attendance_mark(employee_id: str):
        body = _json_body()
        record, message = container.attendance_service.mark(employee_id, body.get("action"), body.get("timestamp"))
        return ok(record_to_dict(record), message=message)

    # -- reports ---------------------------------------------------------------

    @app.route("/api/attendances/statistics", methods=["GET"], endpoint="attendance_statistics")
    @api_errors("Failed to compute attendance statistics")
    def attendance_statistics():
        start, end = _range_args(default_to_month=True)
        stats = container.report_service.department_stats(
            start_date=start, end_date=end, department_id=_int_arg("departmentId")
        )
        return ok(stats)

    @app.route("/api/attendances/reports/monthly", methods=["GET"], endpoint="attendance_monthly_report")
    @api_errors("Failed to build monthly report")
    def attendance_monthly_report():
        today = now_local().date()
        report = container.report_service.monthly_report(
            year=parse_positive_int(request.args.get("year"), "year", default=today.year),
            month=parse_positive_int(request.args.get("month"), "month", default=today.month),
            department_id=_int_arg("departmentId"),
        )
        return ok(report)

    @app.route("/api/attendances/reports/late", methods=["GET"], endpoint="attendance_late_report")
    @api_errors("Failed to build late attendance report")
    def attendance_late_report():
        start, end = _range_args(default_to_month=True)
        statistics, page = container.report_service.late_attendance_report(
            start_date=start,
            end_date=end,
            page=request.args.get("page"),
            page_size=request.args.get("pageSize"),
        )
        return ok({"statistics": statistics, "records": page.items, "pagination": page.meta()})

    # -- leave & exception -----------------------------------------------------

    @app.route("/api/attendances/leave", methods=["POST"], endpoint="attendance_leave_create")
    @api_errors("Failed to create leave application")
    def attendance_leave_create():
        body = _json_body()
        records = container.request_service.create_leave_application(
            employee_id=body.get("employee_id"),
            start_date=body.get("start_date"),
            end_date=body.get("end_date"),
            leave_type=body.get("leave_type"),
            reason=body.get("reason"),
            created_by=body.get("created_by"),
        )
        return ok(
            [record_to_dict(r) for r in records],
            status=201,
            message=f"Leave application created for {len(records)} day(s)",
        )

    @app.route("/api/attendances/leave/<int:attendance_id>", methods=["PUT"], endpoint="attendance_leave_update")
    @api_errors("Failed to update leave application")
    def attendance_leave_update(attendance_id: int):
        body = _json_body()
        record = container.request_service.update_leave_application(
            attendance_id, status=body.get("status"), updated_by=body.get("updated_by")
        )
        return ok(record_to_dict(record), message="Leave application updated")

    @app.route("/api/attendances/exception", methods=["POST"], endpoint="attendance_exception_report")
    @api_errors("Failed to report exceptional attendance")
    def attendance_exception_report():
        body = _json_body()
        record, created = container.request_service.report_exception(
            employee_id=body.get("employee_id"),
            work_date=body.get("date"),
            reason=body.get("reason"),
            proof=body.get("proof"),
            created_by=body.get("created_by"),
        )
        return ok(record_to_dict(record), status=201, message="Exceptional attendance reported", created=created)

    @app.route("/api/attendances/exception/<int:attendance_id>", methods=["PUT"], endpoint="attendance_exception_resolve")
    @api_errors("Failed to resolve exceptional attendance")
    def attendance_exception_resolve(attendance_id: int):
        body = _json_body()
        record = container.request_service.resolve_exception(
            attendance_id,
            status=body.get("status"),
            notes=body.get("notes"),
            updated_by=body.get("updated_by"),
        )
        return ok(record_to_dict(record), message="Exceptional attendance resolved")
