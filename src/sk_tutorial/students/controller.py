from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.http import auth_required, int_arg, json_body
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    staff_required = auth_required(container.token_service, roles=(Role.ADMIN, Role.TEACHER))
    service = container.student_service

    @app.route("/students", methods=["GET"], endpoint="students_list")
    @staff_required
    def students_list():
        result = service.list_students(
            search=request.args.get("search"),
            grade=request.args.get("grade"),
            page=int_arg(request.args.get("page"), "page") or 1,
            limit=int_arg(request.args.get("limit"), "limit") or 50,
        )
        return jsonify(
            {
                "message": "Students fetched successfully",
                "data": {
                    "students": [s.to_dict() for s in result.students],
                    "pagination": result.pagination,
                },
            }
        )

    @app.route("/students", methods=["POST"], endpoint="students_create")
    @staff_required
    def students_create():
        student = service.create_student(json_body(), created_by=g.current_user.user_id)
        return jsonify({"message": "Student created successfully", "data": student.to_dict()}), 201

    @app.route("/students", methods=["PUT"], endpoint="students_update")
    @staff_required
    def students_update():
        student = service.update_student(
            request.args.get("id", ""),
            json_body(),
            updated_by=g.current_user.user_id,
        )
        return jsonify({"message": "Student updated successfully", "data": student.to_dict()})

    @app.route("/students", methods=["DELETE"], endpoint="students_delete")
    @staff_required
    def students_delete():
        student_id = request.args.get("id", "")
        service.delete_student(student_id, deleted_by=g.current_user.user_id)
        return jsonify({"message": "Student deleted successfully", "data": {"id": student_id}})
