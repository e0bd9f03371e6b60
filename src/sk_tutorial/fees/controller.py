from __future__ import annotations

import hmac

from flask import Flask, g, jsonify

from ..common.http import auth_required, bearer_token, json_body
from ..container import Container
from ..core.exceptions import AuthenticationError


def register(app: Flask, container: Container) -> None:
    login_required = auth_required(container.token_service)
    fees = container.fee_service

    @app.route("/auth/monthly-fees", methods=["GET"], endpoint="fees_list")
    @login_required
    def fees_list():
        return jsonify([s.to_dict() for s in fees.list_with_fee_status()])

    @app.route("/auth/monthly-fees", methods=["PUT"], endpoint="fees_replace")
    @login_required
    def fees_replace():
        body = json_body()
        student = fees.update_fee_status(
            body.get("studentId"),
            body.get("monthlyFeeStatus"),
            body.get("lastFeePaidDate"),
            updated_by=g.current_user.user_id,
        )
        return jsonify({"message": "Payment updated successfully", "student": student.to_dict()})

    @app.route("/auth/monthly-fees", methods=["POST"], endpoint="fees_record")
    @login_required
    def fees_record():
        body = json_body()
        entry = fees.record_payment(
            body.get("studentId"),
            body.get("month"),
            body.get("paymentMode"),
            body.get("amount"),
            body.get("paidOn"),
            recorded_by=g.current_user.user_id,
        )
        return jsonify({"message": "Payment recorded successfully", "feeEntry": entry.to_dict()}), 201

    @app.route("/auth/monthly-fees", methods=["DELETE"], endpoint="fees_delete")
    @login_required
    def fees_delete():
        body = json_body()
        fees.delete_payment(body.get("studentId"), body.get("month"), updated_by=g.current_user.user_id)
        return jsonify({"message": "Payment record deleted successfully"})

    @app.route("/auth/schedule-monthly-entry", methods=["PUT"], endpoint="fees_schedule_due")
    def fees_schedule_due():
        # shared secret for the external cron, not a user token
        token = bearer_token() or ""
        secret = container.cron_secret or ""
        if not secret or not hmac.compare_digest(token.encode(), secret.encode()):
            raise AuthenticationError("Unauthorized")
        return jsonify(fees.generate_due_entries())
