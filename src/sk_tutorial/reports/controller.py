from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import auth_required, json_body
from ..container import Container


def register(app: Flask, container: Container) -> None:
    login_required = auth_required(container.token_service)
    reports = container.report_service

    @app.route("/attendance/available-months", methods=["GET"], endpoint="attendance_available_months")
    @login_required
    def attendance_available_months():
        return jsonify(reports.available_months(request.args.get("year")))

    @app.route("/attendance/grade-report", methods=["GET"], endpoint="attendance_grade_report")
    @login_required
    def attendance_grade_report():
        return jsonify(reports.grade_report(month=request.args.get("month"), year=request.args.get("year")))

    @app.route("/attendance/reports", methods=["POST"], endpoint="attendance_reports")
    @login_required
    def attendance_reports():
        body = json_body()
        report = reports.monthly_report(
            year=body.get("year"),
            month=body.get("month"),
            grade=body.get("grade"),
            student_id=body.get("studentId"),
        )
        return jsonify(report.to_dict())

    @app.route("/attendance/reports.csv", methods=["GET"], endpoint="attendance_reports_csv")
    @login_required
    def attendance_reports_csv():
        year = request.args.get("year")
        month = request.args.get("month")
        text = reports.export_monthly_csv(
            year=year,
            month=month,
            grade=request.args.get("grade"),
            student_id=request.args.get("studentId"),
        )
        filename = f"attendance_{year}_{month}.csv"
        return app.response_class(
            text.encode("utf-8-sig"),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
