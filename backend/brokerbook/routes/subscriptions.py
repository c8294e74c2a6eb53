# Overview: Flask API routes for subscriptions, plan changes and the payment gateway webhook.

# backend/brokerbook/routes/subscriptions.py
"""
Subscription routes

Purchase flow:
1. POST /users/<user_id>/subscription with plan_name. Basic activates at
   once; paid plans come back PENDING with an order_id.
2. The gateway reports the result, either through POST /payments/webhook or
   by the client polling GET /subscription/status/<order_id>?order_status=...
3. A PAID result activates the subscription.
"""

import hmac

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..models import Subscription
from ..decorators import require_auth, require_owner
from ..errors import SERVICE_ERRORS, error_response
from ..services import subscription_service
from ..validation import require_fields


subscriptions_bp = Blueprint("subscriptions", __name__, url_prefix="/api/v1/users/<user_id>/subscription")
webhooks_bp = Blueprint("payment_webhooks", __name__, url_prefix="/api/v1/payments")


@subscriptions_bp.get("")
@require_auth
@require_owner
def get_subscription_route(user_id: str):
    """Active plan; Basic with no subscription row when nothing is active."""
    active = subscription_service.resolve_active_plan(user_id)
    history = (
        db.session.query(Subscription)
        .filter_by(user_id=user_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .all()
    )
    return jsonify({
        "active": active.to_dict(),
        "history": [subscription.to_dict() for subscription in history],
    }), 200


@subscriptions_bp.post("")
@require_auth
@require_owner
def create_subscription_route(user_id: str):
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "plan_name")
        subscription = subscription_service.create_subscription(
            user_id, data["plan_name"], duration=data.get("duration"),
        )
        return jsonify({"subscription": subscription.to_dict()}), 201
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create subscription")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.post("/downgrade")
@require_auth
@require_owner
def downgrade_route(user_id: str):
    """
    Downgrade to a lower tier.

    Rejected with 400 and details.violations when current usage exceeds the
    target plan's limits; nothing changes in that case.
    """
    data = request.get_json(silent=True) or {}
    try:
        subscription = subscription_service.downgrade_plan(user_id, data.get("plan_name"))
        return jsonify({"subscription": subscription.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to downgrade subscription")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.get("/status/<order_id>")
@require_auth
@require_owner
def order_status_route(user_id: str, order_id: str):
    subscription = (
        db.session.query(Subscription)
        .filter_by(order_id=order_id, user_id=g.current_user.id)
        .first()
    )
    if not subscription:
        return jsonify({"error": "Subscription not found"}), 404

    order_status = request.args.get("order_status")
    if not order_status:
        return jsonify({"subscription": subscription.to_dict()}), 200

    try:
        subscription = subscription_service.confirm_payment(order_id, order_status)
        return jsonify({"subscription": subscription.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to apply order status")
        return jsonify({"error": "Internal server error"}), 500


@webhooks_bp.post("/webhook")
def payment_webhook_route():
    """Gateway callback; authenticated by X-Webhook-Secret when a secret is configured."""
    secret = current_app.config.get("PAYMENT_WEBHOOK_SECRET")
    if secret:
        presented = request.headers.get("X-Webhook-Secret", "")
        if not hmac.compare_digest(presented.encode("utf-8"), secret.encode("utf-8")):
            current_app.logger.warning("Rejected payment webhook with bad secret")
            return jsonify({"error": "Invalid webhook secret"}), 401

    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "order_id", "order_status")
        subscription = subscription_service.confirm_payment(data["order_id"], data["order_status"])
        return jsonify({"subscription": subscription.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to process payment webhook")
        return jsonify({"error": "Internal server error"}), 500
