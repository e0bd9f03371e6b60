from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.http import auth_required, json_body
from ..container import Container


def register(app: Flask, container: Container) -> None:
    login_required = auth_required(container.token_service)

    @app.route("/attendance/mark", methods=["GET"], endpoint="attendance_students")
    @login_required
    def attendance_students():
        students = container.attendance_service.list_students_for_marking()
        return jsonify([s.to_dict() for s in students])

    @app.route("/attendance/mark", methods=["POST"], endpoint="attendance_mark")
    @login_required
    def attendance_mark():
        body = json_body()
        result = container.attendance_service.mark_attendance(
            body.get("date"),
            body.get("attendance"),
            marked_by=g.current_user.user_id,
            role=g.current_user.role,
        )
        return jsonify({"message": "Attendance marked successfully", **result.to_dict()})
