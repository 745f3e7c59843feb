from __future__ import annotations

import logging
from datetime import timedelta
from functools import wraps

from flask import Flask, jsonify, request

from ..attendance.model import worked_minutes
from ..common.datetime_utils import format_minutes, now_local, parse_iso_date
from ..core.exceptions import DecodeError, StoreUnavailableError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value is not None else None


def register(app: Flask, container: Container) -> None:
    attendance = container.attendance_service
    aggregation = container.aggregation_service
    payroll = container.payroll_service

    def json_api(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except (ValidationError, DecodeError) as e:
                return jsonify({"success": False, "message": str(e)}), 400
            except StoreUnavailableError as e:
                logger.warning("Store unavailable while serving %s: %s", request.path, e)
                return jsonify({"success": False, "message": "Backing store unavailable"}), 503

        return wrapper

    def json_body() -> dict:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return body

    # ----- attendance -----

    @app.route("/api/attendance/process-event", methods=["POST"], endpoint="process_event")
    @json_api
    def process_event():
        outcome = container.pipeline.process_event(json_body())
        return jsonify({
            "success": True,
            "message": f"{outcome.action.value} recorded",
            "data": outcome.as_ack(),
        })

    @app.route("/api/attendance/recent", methods=["GET"], endpoint="recent_events")
    @json_api
    def recent_events():
        return jsonify({"success": True, "data": [o.as_ack() for o in container.pipeline.recent_outcomes()]})

    @app.route("/api/attendance/<employee_id>/<day>/status", methods=["GET"], endpoint="daily_status")
    @json_api
    def daily_status(employee_id: str, day: str):
        work_date = parse_iso_date(day)
        record = attendance.get_record(employee_id, work_date)
        decision = attendance.classify(record)
        minutes = worked_minutes(record)
        return jsonify({
            "success": True,
            "data": {
                "employeeId": employee_id,
                "date": work_date.isoformat(),
                "status": decision.status.value,
                "note": decision.note,
                "provisional": decision.provisional,
                "checkIn": _iso(record.check_in) if record else None,
                "checkOut": _iso(record.check_out) if record else None,
                "workedMinutes": minutes,
                "workedHours": format_minutes(minutes),
            },
        })

    @app.route("/api/attendance/<employee_id>", methods=["DELETE"], endpoint="clear_attendance")
    @json_api
    def clear_attendance(employee_id: str):
        day = request.args.get("date")
        work_date = parse_iso_date(day) if day else now_local().date()
        result = attendance.clear_attendance(employee_id, work_date)
        data = {
            "employeeId": employee_id,
            "date": work_date.isoformat(),
            "cleared": result.cleared,
            "reason": result.reason,
        }
        if result.reason == "not_found":
            return jsonify({"success": False, "message": "No attendance record for this employee and date", "data": data}), 404
        return jsonify({"success": True, "data": data})

    @app.route("/api/attendance/summary/<day>", methods=["GET"], endpoint="attendance_summary")
    @json_api
    def attendance_summary(day: str):
        work_date = parse_iso_date(day)
        daily = attendance.daily_summary(work_date)
        presence = attendance.presence_summary(work_date)
        return jsonify({
            "success": True,
            "data": {
                "date": work_date.isoformat(),
                "totalEmployees": daily.total_employees,
                "onTime": daily.on_time,
                "late": daily.late,
                "overtime": daily.overtime,
                "absent": daily.absent,
                "checkedIn": presence.checked_in,
                "checkedOut": presence.checked_out,
                "pendingCheckout": presence.pending_checkout,
            },
        })

    @app.route("/api/attendance/anomalies", methods=["GET"], endpoint="attendance_anomalies")
    @json_api
    def attendance_anomalies():
        end = parse_iso_date(request.args["end"]) if request.args.get("end") else now_local().date()
        start = parse_iso_date(request.args["start"]) if request.args.get("start") else end - timedelta(days=6)
        anomalies = attendance.detect_anomalies(start, end)
        return jsonify({
            "success": True,
            "data": [
                {"type": a.type.value, "employeeId": a.employee_id, "date": a.work_date.isoformat(), "detail": a.detail}
                for a in anomalies
            ],
        })

    @app.route("/api/attendance/<employee_id>/aggregate/<month>", methods=["GET"], endpoint="monthly_aggregate")
    @json_api
    def monthly_aggregate(employee_id: str, month: str):
        return jsonify({"success": True, "data": aggregation.aggregate(employee_id, month).as_dict()})

    @app.route("/api/attendance/<employee_id>/weekly", methods=["GET"], endpoint="weekly_aggregate")
    @json_api
    def weekly_aggregate(employee_id: str):
        end = parse_iso_date(request.args["end"]) if request.args.get("end") else now_local().date()
        try:
            weeks = int(request.args.get("weeks", 12))
        except ValueError as e:
            raise ValidationError("weeks must be an integer") from e
        rows = aggregation.rolling_weekly(employee_id, end, weeks)
        return jsonify({
            "success": True,
            "data": [
                {"weekStart": w.week_start.isoformat(), "workedMinutes": w.worked_minutes, "daysPresent": w.days_present}
                for w in rows
            ],
        })

    @app.route("/api/attendance/report/<month>", methods=["GET"], endpoint="month_report")
    @json_api
    def month_report(month: str):
        ids = request.args.getlist("employeeId") or [e.employee_id for e in container.employees.list_active()]
        report = aggregation.build_month_report(month, ids)
        return jsonify({"success": True, "data": {"rows": report.rows, "summary": report.summary}})

    # ----- payroll -----

    @app.route("/api/payroll/<employee_id>/<month>", methods=["GET"], endpoint="compute_pay")
    @json_api
    def compute_pay(employee_id: str, month: str):
        return jsonify({"success": True, "data": payroll.compute_pay(employee_id, month).as_dict()})

    @app.route("/api/payroll/<employee_id>/<month>/payslip", methods=["POST"], endpoint="generate_payslip")
    @json_api
    def generate_payslip(employee_id: str, month: str):
        snapshot = payroll.generate_payslip(employee_id, month)
        return jsonify({"success": True, "data": snapshot.as_dict()}), 201

    @app.route("/api/payroll/<employee_id>/base", methods=["PUT"], endpoint="set_base_pay")
    @json_api
    def set_base_pay(employee_id: str):
        value = payroll.set_base_pay(employee_id, json_body().get("base"))
        return jsonify({"success": True, "data": {"employeeId": employee_id, "base": str(value)}})

    @app.route("/api/payroll/<employee_id>/adjustment", methods=["PUT"], endpoint="set_adjustment")
    @json_api
    def set_adjustment(employee_id: str):
        body = json_body()
        adj = payroll.set_adjustment(
            employee_id,
            allowance=body.get("allowance"),
            bonus=body.get("bonus"),
            deduction=body.get("deduction"),
            month=body.get("month"),
        )
        return jsonify({
            "success": True,
            "data": {
                "employeeId": adj.employee_id,
                "month": adj.month,
                "allowance": str(adj.allowance),
                "bonus": str(adj.bonus),
                "deduction": str(adj.deduction),
            },
        })

    @app.route("/api/payroll/history", methods=["GET"], endpoint="payslip_history")
    @json_api
    def payslip_history():
        items = payroll.payslip_history(request.args.get("employeeId"), request.args.get("month"))
        return jsonify({"success": True, "data": [s.as_dict() for s in reversed(items)]})

    @app.route("/api/payroll/history", methods=["DELETE"], endpoint="clear_payslip_history")
    @json_api
    def clear_payslip_history():
        return jsonify({"success": True, "data": {"removed": payroll.clear_payslip_history()}})

    @app.route("/api/payroll/status/<employee_id>/<month>", methods=["GET"], endpoint="get_payroll_status")
    @json_api
    def get_payroll_status(employee_id: str, month: str):
        return jsonify({"success": True, "data": payroll.get_payroll_status(employee_id, month).as_dict()})

    @app.route("/api/payroll/status/<employee_id>/<month>", methods=["PUT"], endpoint="set_payroll_status")
    @json_api
    def set_payroll_status(employee_id: str, month: str):
        result = payroll.set_payroll_status(employee_id, month, json_body().get("status"))
        return jsonify({
            "success": True,
            "message": "Payroll status updated successfully",
            "data": result.as_dict(),
        })

    @app.route("/api/payroll/statuses/<month>", methods=["GET"], endpoint="payroll_statuses")
    @json_api
    def payroll_statuses(month: str):
        result = payroll.statuses_for_month(month)
        return jsonify({
            "success": True,
            "data": {
                "month": result.month,
                "degraded": result.degraded,
                "statuses": [{"employeeId": emp, "status": state.value} for emp, state in sorted(result.statuses.items())],
            },
        })

    @app.route("/api/payroll/summary/<month>", methods=["GET"], endpoint="payroll_summary")
    @json_api
    def payroll_summary(month: str):
        ids = request.args.getlist("employeeId") or None
        return jsonify({"success": True, "data": payroll.month_summary(month, ids).as_dict()})

    # ----- broker -----

    @app.route("/api/broker/state", methods=["GET"], endpoint="broker_state")
    def broker_state():
        state = container.broker.get_connection_state()
        data = state.as_dict()
        data["topics"] = container.broker.subscribed_topics()
        data["queuedMessages"] = container.broker.queued_messages
        return jsonify({"success": True, "data": data})
