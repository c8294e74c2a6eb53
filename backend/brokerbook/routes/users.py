# Overview: Flask API routes for the user's own profile and plan usage.

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..models import User
from ..decorators import require_auth, require_owner
from ..errors import SERVICE_ERRORS, error_response
from ..services.limit_service import usage_summary
from ..validation import ModelValidationPolicy, validate_payload

USER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "phone"}),
)

users_bp = Blueprint("users", __name__, url_prefix="/api/v1/users/<user_id>")


@users_bp.get("")
@require_auth
@require_owner
def get_user_route(user_id: str):
    return jsonify({"user": g.current_user.to_dict()}), 200


@users_bp.put("")
@require_auth
@require_owner
def update_user_route(user_id: str):
    """Update name / phone. Email and password have their own flows."""
    try:
        patch = validate_payload(model=User, payload=request.get_json(silent=True), policy=USER_POLICY, partial=True)
        for key, value in patch.items():
            setattr(g.current_user, key, value)
        db.session.commit()
        return jsonify({"user": g.current_user.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("/usage")
@require_auth
@require_owner
def usage_route(user_id: str):
    """Current counts against the active plan's limits."""
    return jsonify(usage_summary(user_id)), 200
