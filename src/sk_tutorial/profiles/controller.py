from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import auth_required
from ..container import Container
from ..core.enums import Role


def _photo():
    """Uploaded photo stream, or None when the form carries no (or an empty) file."""
    f = request.files.get("photo")
    if not f or not f.filename:
        return None
    return f.stream


def register(app: Flask, container: Container) -> None:
    staff_required = auth_required(container.token_service, roles=(Role.ADMIN, Role.TEACHER))
    service = container.profile_service

    @app.route("/students/idgenstd", methods=["GET"], endpoint="profiles_list")
    @staff_required
    def profiles_list():
        rows = service.list_profiles(
            search=request.args.get("search"),
            class_name=request.args.get("class"),
            sort_by=request.args.get("sortBy", "createdAt"),
            order=request.args.get("order", "desc"),
        )
        return jsonify({"success": True, "count": len(rows), "data": rows})

    @app.route("/students/idgenstd", methods=["POST"], endpoint="profiles_create")
    @staff_required
    def profiles_create():
        profile = service.create_profile(request.form, _photo())
        return jsonify({"success": True, "message": "Student created successfully", "data": profile.to_dict()}), 201

    @app.route("/students/idgenstd", methods=["PUT"], endpoint="profiles_update")
    @staff_required
    def profiles_update():
        profile = service.update_profile(request.form.get("studentId", ""), request.form, _photo())
        return jsonify({"success": True, "message": "Student updated successfully", "data": profile.to_dict()})

    @app.route("/students/delete_Id/<profile_id>", methods=["DELETE"], endpoint="profiles_delete")
    @staff_required
    def profiles_delete(profile_id: str):
        deleted = service.delete_profile(profile_id)
        return jsonify(
            {
                "success": True,
                "message": "Student deleted successfully",
                "deletedStudent": {"id": profile_id, "name": deleted.student_name, "class": deleted.class_name},
            }
        )
