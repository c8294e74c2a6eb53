# Overview: Flask API routes for clients (the sellers and buyers a broker trades between).

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import Client
from ..decorators import require_auth, require_owner, enforce_plan_limit
from ..errors import SERVICE_ERRORS, error_response
from ..services import client_service
from ..services.ownership_service import require_client
from ..services.plans import ResourceType
from ..validation import ModelValidationPolicy, validate_payload


CLIENT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "email", "phone", "pan", "gstin", "address", "notes"}),
    required_on_create=frozenset({"name"}),
)

clients_bp = Blueprint("clients", __name__, url_prefix="/api/v1/users/<user_id>/clients")


@clients_bp.get("")
@require_auth
@require_owner
def list_clients_route(user_id: str):
    """List clients, optionally filtered with ?search= on name, phone or PAN."""
    clients = client_service.list_clients(user_id, search=request.args.get("search"))
    return jsonify({"clients": [client.to_dict() for client in clients]}), 200


@clients_bp.post("")
@require_auth
@require_owner
@enforce_plan_limit(ResourceType.CLIENTS)
def create_client_route(user_id: str):
    try:
        patch = validate_payload(model=Client, payload=request.get_json(silent=True), policy=CLIENT_POLICY, partial=False)
        client = client_service.create_client(user_id, patch)
        return jsonify({"client": client.to_dict()}), 201
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create client")
        return jsonify({"error": "Internal server error"}), 500


@clients_bp.get("/<client_id>")
@require_auth
@require_owner
def get_client_route(user_id: str, client_id: str):
    try:
        return jsonify({"client": require_client(user_id, client_id).to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@clients_bp.put("/<client_id>")
@require_auth
@require_owner
def update_client_route(user_id: str, client_id: str):
    try:
        patch = validate_payload(model=Client, payload=request.get_json(silent=True), policy=CLIENT_POLICY, partial=True)
        client = client_service.update_client(user_id, client_id, patch)
        return jsonify({"client": client.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update client")
        return jsonify({"error": "Internal server error"}), 500


@clients_bp.delete("/<client_id>")
@require_auth
@require_owner
def delete_client_route(user_id: str, client_id: str):
    try:
        client_service.delete_client(user_id, client_id)
        return jsonify({"message": "Client deleted"}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete client")
        return jsonify({"error": "Internal server error"}), 500


@clients_bp.get("/<client_id>/sales")
@require_auth
@require_owner
def client_sales_route(user_id: str, client_id: str):
    """Sales where the client is either the seller or the buyer."""
    try:
        sales = client_service.client_sales(user_id, client_id)
        return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
