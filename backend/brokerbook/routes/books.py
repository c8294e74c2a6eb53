# Overview: Flask API routes for books; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import Book
from ..models.books import BOOK_STATUSES
from ..decorators import require_auth, require_owner, enforce_plan_limit
from ..errors import SERVICE_ERRORS, error_response
from ..services import book_service
from ..services.ownership_service import require_book
from ..services.plans import ResourceType
from ..validation import ModelValidationPolicy, validate_payload


BOOK_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "start_date", "end_date",
        "opening_balance", "closing_balance", "notes", "status",
    }),
    required_on_create=frozenset({"name", "start_date", "end_date"}),
    choices={"status": BOOK_STATUSES},
)

books_bp = Blueprint("books", __name__, url_prefix="/api/v1/users/<user_id>/books")


@books_bp.get("")
@require_auth
@require_owner
def list_books_route(user_id: str):
    books = book_service.list_books(user_id)
    return jsonify({"books": [book.to_dict() for book in books]}), 200


@books_bp.post("")
@require_auth
@require_owner
@enforce_plan_limit(ResourceType.BOOKS)
def create_book_route(user_id: str):
    try:
        patch = validate_payload(model=Book, payload=request.get_json(silent=True), policy=BOOK_POLICY, partial=False)
        book = book_service.create_book(user_id, patch)
        return jsonify({"book": book.to_dict()}), 201
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create book")
        return jsonify({"error": "Internal server error"}), 500


@books_bp.get("/<book_id>")
@require_auth
@require_owner
def get_book_route(user_id: str, book_id: str):
    try:
        book = require_book(user_id, book_id)
        return jsonify({"book": book.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@books_bp.put("/<book_id>")
@require_auth
@require_owner
def update_book_route(user_id: str, book_id: str):
    try:
        patch = validate_payload(model=Book, payload=request.get_json(silent=True), policy=BOOK_POLICY, partial=True)
        book = book_service.update_book(user_id, book_id, patch)
        return jsonify({"book": book.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update book")
        return jsonify({"error": "Internal server error"}), 500


@books_bp.delete("/<book_id>")
@require_auth
@require_owner
def delete_book_route(user_id: str, book_id: str):
    try:
        book_service.delete_book(user_id, book_id)
        return jsonify({"message": "Book deleted"}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete book")
        return jsonify({"error": "Internal server error"}), 500
