# Overview: Flask API routes for sale products; every write re-prices the parent sale.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import Product
from ..decorators import require_auth, require_owner
from ..errors import SERVICE_ERRORS, error_response
from ..services import line_item_service
from ..services.ownership_service import require_sale, require_product
from ..validation import ModelValidationPolicy, validate_payload


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "quantity", "unit", "rate", "gst_rate", "discount_rate", "notes"}),
    required_on_create=frozenset({"name"}),
    non_negative_fields=frozenset({"quantity", "rate", "gst_rate", "discount_rate"}),
)

products_bp = Blueprint("products", __name__, url_prefix="/api/v1/users/<user_id>/sales/<sale_id>/products")


def _sale_totals(user_id: str, sale_id: str) -> dict:
    return require_sale(user_id, sale_id).totals.to_dict()


@products_bp.get("")
@require_auth
@require_owner
def list_products_route(user_id: str, sale_id: str):
    try:
        sale = require_sale(user_id, sale_id)
        return jsonify({
            "products": [product.to_dict() for product in sale.products],
            "totals": sale.totals.to_dict(),
        }), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@products_bp.post("")
@require_auth
@require_owner
def create_product_route(user_id: str, sale_id: str):
    """Add a line item; the response carries the sale's updated totals."""
    try:
        patch = validate_payload(model=Product, payload=request.get_json(silent=True), policy=PRODUCT_POLICY, partial=False)
        product = line_item_service.create_product(user_id, sale_id, patch)
        return jsonify({"product": product.to_dict(), "sale_totals": _sale_totals(user_id, sale_id)}), 201
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<product_id>")
@require_auth
@require_owner
def get_product_route(user_id: str, sale_id: str, product_id: str):
    try:
        product = require_product(user_id, product_id, sale_id=sale_id)
        return jsonify({"product": product.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@products_bp.put("/<product_id>")
@require_auth
@require_owner
def update_product_route(user_id: str, sale_id: str, product_id: str):
    try:
        patch = validate_payload(model=Product, payload=request.get_json(silent=True), policy=PRODUCT_POLICY, partial=True)
        product = line_item_service.update_product(user_id, product_id, patch, sale_id=sale_id)
        return jsonify({"product": product.to_dict(), "sale_totals": _sale_totals(user_id, sale_id)}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<product_id>")
@require_auth
@require_owner
def delete_product_route(user_id: str, sale_id: str, product_id: str):
    try:
        line_item_service.delete_product(user_id, product_id, sale_id=sale_id)
        return jsonify({"message": "Product deleted", "sale_totals": _sale_totals(user_id, sale_id)}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
