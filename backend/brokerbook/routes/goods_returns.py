# Overview: Flask API routes for goods returns and their returned product lines.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import GoodsReturn, GoodsReturnProduct
from ..decorators import require_auth, require_owner
from ..errors import SERVICE_ERRORS, error_response
from ..services import goods_return_service, line_item_service
from ..services.ownership_service import require_goods_return, require_return_product
from ..validation import ModelValidationPolicy, validate_payload


GOODS_RETURN_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"notes"}),
)

RETURN_PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"product_id", "quantity"}),
    required_on_create=frozenset({"product_id", "quantity"}),
    non_negative_fields=frozenset({"quantity"}),
)

goods_returns_bp = Blueprint("goods_returns", __name__, url_prefix="/api/v1/users/<user_id>")


# ---------------------------------------------------------------------------
# Goods return headers
# ---------------------------------------------------------------------------

@goods_returns_bp.get("/sales/<sale_id>/goods-returns")
@require_auth
@require_owner
def list_goods_returns_route(user_id: str, sale_id: str):
    try:
        goods_returns = goods_return_service.list_goods_returns(user_id, sale_id)
        return jsonify({"goods_returns": [gr.to_dict() for gr in goods_returns]}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@goods_returns_bp.post("/sales/<sale_id>/goods-returns")
@require_auth
@require_owner
def create_goods_return_route(user_id: str, sale_id: str):
    try:
        patch = validate_payload(
            model=GoodsReturn, payload=request.get_json(silent=True), policy=GOODS_RETURN_POLICY, partial=False,
        )
        goods_return = goods_return_service.create_goods_return(user_id, sale_id, patch)
        return jsonify({"goods_return": goods_return.to_dict()}), 201
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create goods return")
        return jsonify({"error": "Internal server error"}), 500


@goods_returns_bp.get("/sales/<sale_id>/goods-returns/<goods_return_id>")
@require_auth
@require_owner
def get_goods_return_route(user_id: str, sale_id: str, goods_return_id: str):
    try:
        goods_return = require_goods_return(user_id, goods_return_id, sale_id=sale_id)
        data = goods_return.to_dict()
        data["products"] = [line.to_dict() for line in goods_return.lines]
        return jsonify({"goods_return": data}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@goods_returns_bp.put("/sales/<sale_id>/goods-returns/<goods_return_id>")
@require_auth
@require_owner
def update_goods_return_route(user_id: str, sale_id: str, goods_return_id: str):
    try:
        patch = validate_payload(
            model=GoodsReturn, payload=request.get_json(silent=True), policy=GOODS_RETURN_POLICY, partial=True,
        )
        goods_return = goods_return_service.update_goods_return(user_id, goods_return_id, patch, sale_id=sale_id)
        return jsonify({"goods_return": goods_return.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update goods return")
        return jsonify({"error": "Internal server error"}), 500


@goods_returns_bp.delete("/sales/<sale_id>/goods-returns/<goods_return_id>")
@require_auth
@require_owner
def delete_goods_return_route(user_id: str, sale_id: str, goods_return_id: str):
    try:
        goods_return_service.delete_goods_return(user_id, goods_return_id, sale_id=sale_id)
        return jsonify({"message": "Goods return deleted"}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete goods return")
        return jsonify({"error": "Internal server error"}), 500


# ---------------------------------------------------------------------------
# Returned product lines
# ---------------------------------------------------------------------------

def _return_totals(user_id: str, goods_return_id: str) -> dict:
    return require_goods_return(user_id, goods_return_id).totals.to_dict()


@goods_returns_bp.get("/goods-returns/<goods_return_id>/products")
@require_auth
@require_owner
def list_return_products_route(user_id: str, goods_return_id: str):
    try:
        goods_return = require_goods_return(user_id, goods_return_id)
        return jsonify({
            "products": [line.to_dict() for line in goods_return.lines],
            "totals": goods_return.totals.to_dict(),
        }), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@goods_returns_bp.post("/goods-returns/<goods_return_id>/products")
@require_auth
@require_owner
def create_return_product_route(user_id: str, goods_return_id: str):
    """Return a quantity of one of the sale's products, priced at its sale terms."""
    try:
        patch = validate_payload(
            model=GoodsReturnProduct, payload=request.get_json(silent=True), policy=RETURN_PRODUCT_POLICY, partial=False,
        )
        line = line_item_service.create_return_product(user_id, goods_return_id, patch)
        return jsonify({
            "goods_return_product": line.to_dict(),
            "goods_return_totals": _return_totals(user_id, goods_return_id),
        }), 201
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create goods return product")
        return jsonify({"error": "Internal server error"}), 500


@goods_returns_bp.get("/goods-returns/<goods_return_id>/products/<line_id>")
@require_auth
@require_owner
def get_return_product_route(user_id: str, goods_return_id: str, line_id: str):
    try:
        line = require_return_product(user_id, line_id, goods_return_id=goods_return_id)
        return jsonify({"goods_return_product": line.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@goods_returns_bp.put("/goods-returns/<goods_return_id>/products/<line_id>")
@require_auth
@require_owner
def update_return_product_route(user_id: str, goods_return_id: str, line_id: str):
    try:
        patch = validate_payload(
            model=GoodsReturnProduct, payload=request.get_json(silent=True), policy=RETURN_PRODUCT_POLICY, partial=True,
        )
        line = line_item_service.update_return_product(user_id, line_id, patch, goods_return_id=goods_return_id)
        return jsonify({
            "goods_return_product": line.to_dict(),
            "goods_return_totals": _return_totals(user_id, goods_return_id),
        }), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update goods return product")
        return jsonify({"error": "Internal server error"}), 500


@goods_returns_bp.delete("/goods-returns/<goods_return_id>/products/<line_id>")
@require_auth
@require_owner
def delete_return_product_route(user_id: str, goods_return_id: str, line_id: str):
    try:
        line_item_service.delete_return_product(user_id, line_id, goods_return_id=goods_return_id)
        return jsonify({
            "message": "Goods return product deleted",
            "goods_return_totals": _return_totals(user_id, goods_return_id),
        }), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete goods return product")
        return jsonify({"error": "Internal server error"}), 500
