# Overview: Flask API routes for sale payments and broker commissions.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import SalePayment, SaleCommission
from ..models.sales import PAYMENT_METHODS
from ..decorators import require_auth, require_owner
from ..errors import SERVICE_ERRORS, error_response
from ..services import payment_service
from ..services.ownership_service import require_sale_payment, require_sale_commission
from ..validation import ModelValidationPolicy, validate_payload


PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"amount", "payment_method", "reference_number", "notes"}),
    required_on_create=frozenset({"amount", "payment_method"}),
    non_negative_fields=frozenset({"amount"}),
    choices={"payment_method": PAYMENT_METHODS},
)

# Same shape as a payment: how much commission was collected and how
COMMISSION_POLICY = PAYMENT_POLICY

payments_bp = Blueprint("payments", __name__, url_prefix="/api/v1/users/<user_id>")


@payments_bp.get("/sales/<sale_id>/payments")
@require_auth
@require_owner
def list_payments_route(user_id: str, sale_id: str):
    try:
        payments = payment_service.list_payments(user_id, sale_id)
        return jsonify({"payments": [payment.to_dict() for payment in payments]}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@payments_bp.post("/sales/<sale_id>/payments")
@require_auth
@require_owner
def create_payment_route(user_id: str, sale_id: str):
    try:
        patch = validate_payload(model=SalePayment, payload=request.get_json(silent=True), policy=PAYMENT_POLICY, partial=False)
        payment = payment_service.create_payment(user_id, sale_id, patch)
        return jsonify({"payment": payment.to_dict()}), 201
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create sale payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/sales/<sale_id>/payments/<payment_id>")
@require_auth
@require_owner
def get_payment_route(user_id: str, sale_id: str, payment_id: str):
    try:
        payment = require_sale_payment(user_id, payment_id, sale_id=sale_id)
        return jsonify({"payment": payment.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@payments_bp.put("/sales/<sale_id>/payments/<payment_id>")
@require_auth
@require_owner
def update_payment_route(user_id: str, sale_id: str, payment_id: str):
    try:
        patch = validate_payload(model=SalePayment, payload=request.get_json(silent=True), policy=PAYMENT_POLICY, partial=True)
        payment = payment_service.update_payment(user_id, payment_id, patch, sale_id=sale_id)
        return jsonify({"payment": payment.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update sale payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.delete("/sales/<sale_id>/payments/<payment_id>")
@require_auth
@require_owner
def delete_payment_route(user_id: str, sale_id: str, payment_id: str):
    try:
        payment_service.delete_payment(user_id, payment_id, sale_id=sale_id)
        return jsonify({"message": "Sale payment deleted"}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete sale payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/payments/<payment_id>/commissions")
@require_auth
@require_owner
def list_commissions_route(user_id: str, payment_id: str):
    try:
        commissions = payment_service.list_commissions(user_id, payment_id)
        return jsonify({"commissions": [commission.to_dict() for commission in commissions]}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@payments_bp.post("/payments/<payment_id>/commissions")
@require_auth
@require_owner
def create_commission_route(user_id: str, payment_id: str):
    try:
        patch = validate_payload(
            model=SaleCommission, payload=request.get_json(silent=True), policy=COMMISSION_POLICY, partial=False,
        )
        commission = payment_service.create_commission(user_id, payment_id, patch)
        return jsonify({"commission": commission.to_dict()}), 201
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create sale commission")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/payments/<payment_id>/commissions/<commission_id>")
@require_auth
@require_owner
def get_commission_route(user_id: str, payment_id: str, commission_id: str):
    try:
        commission = require_sale_commission(user_id, commission_id, sale_payment_id=payment_id)
        return jsonify({"commission": commission.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@payments_bp.put("/payments/<payment_id>/commissions/<commission_id>")
@require_auth
@require_owner
def update_commission_route(user_id: str, payment_id: str, commission_id: str):
    try:
        patch = validate_payload(
            model=SaleCommission, payload=request.get_json(silent=True), policy=COMMISSION_POLICY, partial=True,
        )
        commission = payment_service.update_commission(user_id, commission_id, patch, payment_id=payment_id)
        return jsonify({"commission": commission.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update sale commission")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.delete("/payments/<payment_id>/commissions/<commission_id>")
@require_auth
@require_owner
def delete_commission_route(user_id: str, payment_id: str, commission_id: str):
    try:
        payment_service.delete_commission(user_id, commission_id, payment_id=payment_id)
        return jsonify({"message": "Sale commission deleted"}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete sale commission")
        return jsonify({"error": "Internal server error"}), 500
