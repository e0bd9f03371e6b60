from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.http import auth_required, json_body
from ..container import Container


def register(app: Flask, container: Container) -> None:
    login_required = auth_required(container.token_service)

    @app.route("/auth/login", methods=["POST"], endpoint="login")
    def login():
        body = json_body()
        result = container.auth_service.login(body.get("email"), body.get("password"), body.get("role"))
        return jsonify({"message": "Login successful", "token": result.token, "user": result.user.to_public()})

    @app.route("/auth/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        user = container.auth_service.current_user(g.current_user)
        return jsonify({"user": user.to_public()})
