# Overview: Flask API routes for commission payment reminders.

from flask import Blueprint, jsonify, current_app

from ..decorators import require_auth, require_owner, require_feature
from ..errors import SERVICE_ERRORS, error_response
from ..services import reminder_service
from ..services.plans import Feature


reminders_bp = Blueprint("reminders", __name__, url_prefix="/api/v1/users/<user_id>/payment-reminders")


@reminders_bp.get("/upcoming")
@require_auth
@require_owner
@require_feature(Feature.PAYMENT_REMINDERS)
def upcoming_route(user_id: str):
    """Open sales due within the window, overdue ones first."""
    candidates = reminder_service.upcoming_payments(user_id)
    return jsonify({"payments": [c.to_dict() for c in candidates]}), 200


@reminders_bp.get("/due")
@require_auth
@require_owner
@require_feature(Feature.PAYMENT_REMINDERS)
def due_route(user_id: str):
    candidates = reminder_service.sales_due_for_reminder(user_id)
    return jsonify({"payments": [c.to_dict() for c in candidates]}), 200


@reminders_bp.post("/send")
@require_auth
@require_owner
@require_feature(Feature.PAYMENT_REMINDERS)
def send_route(user_id: str):
    try:
        summary = reminder_service.send_payment_reminders(user_id)
        return jsonify(summary), 200
    except Exception:
        current_app.logger.exception("Failed to send payment reminders")
        return jsonify({"error": "Internal server error"}), 500


@reminders_bp.post("/send/<sale_id>")
@require_auth
@require_owner
@require_feature(Feature.PAYMENT_REMINDERS)
def send_for_sale_route(user_id: str, sale_id: str):
    """Remind about one sale now, whatever its due date."""
    try:
        result = reminder_service.send_reminder_for_sale(user_id, sale_id)
        return jsonify({"result": result.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to send payment reminder")
        return jsonify({"error": "Internal server error"}), 500
