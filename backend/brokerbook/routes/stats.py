# Overview: Flask API routes for dashboard figures and per-resource plan usage.

# backend/brokerbook/routes/stats.py
"""
Stats routes

Read-only summaries for the dashboard and for "can I add another one?"
checks in the UI. The fixed /books/stats, /clients/stats and /sales/stats
paths take precedence over the /<id> routes of the resource blueprints.
"""

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_owner
from ..errors import SERVICE_ERRORS, error_response
from ..services import stats_service


stats_bp = Blueprint("stats", __name__, url_prefix="/api/v1/users/<user_id>")


@stats_bp.get("/dashboard")
@require_auth
@require_owner
def dashboard_route(user_id: str):
    """Totals, 12-month history and due/overdue invoices across all books."""
    return jsonify(stats_service.dashboard_stats(user_id)), 200


@stats_bp.get("/books/<book_id>/dashboard")
@require_auth
@require_owner
def book_dashboard_route(user_id: str, book_id: str):
    try:
        return jsonify(stats_service.dashboard_stats(user_id, book_id=book_id)), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@stats_bp.get("/books/stats")
@require_auth
@require_owner
def book_stats_route(user_id: str):
    return jsonify(stats_service.book_stats(user_id)), 200


@stats_bp.get("/clients/stats")
@require_auth
@require_owner
def client_stats_route(user_id: str):
    return jsonify(stats_service.client_stats(user_id)), 200


@stats_bp.get("/sales/stats")
@require_auth
@require_owner
def sale_stats_route(user_id: str):
    """
    Query params:
    - book_id: make current_count book-specific
    """
    try:
        return jsonify(stats_service.sale_stats(user_id, book_id=request.args.get("book_id"))), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@stats_bp.get("/stats")
@require_auth
@require_owner
def user_stats_route(user_id: str):
    return jsonify(stats_service.user_plan_stats(user_id)), 200
