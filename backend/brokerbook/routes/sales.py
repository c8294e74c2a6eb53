# Overview: Flask API routes for sales (invoices); parses input and returns JSON responses.

# backend/brokerbook/routes/sales.py
"""
Sale routes

Sales are created inside a book and addressed either through the book
(/books/<book_id>/sales/...) or directly (/sales/<sale_id>). Invoice totals
are read-only here; they move when products are written.
"""

from flask import Blueprint, request, jsonify, current_app, Response

from ..extensions import db
from ..models import Sale
from ..models.sales import SALE_STATUSES
from ..decorators import require_auth, require_owner, enforce_plan_limit, require_feature
from ..errors import SERVICE_ERRORS, error_response
from ..services import sale_service
from ..services.invoice_mail_service import send_invoice_email
from ..services.invoice_pdf_service import render_invoice_pdf
from ..services.ownership_service import require_sale
from ..services.plans import Feature, ResourceType
from ..validation import ModelValidationPolicy, validate_payload


SALE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "seller_id", "buyer_id",
        "lorry_receipt_number", "lorry_receipt_date", "case_number",
        "weight", "freight",
        "transport_name", "transport_number", "transport_station",
        "e_way_bill_number", "e_way_bill_date",
        "challan_number", "challan_date",
        "invoice_number", "invoice_date",
        "commission_rate", "invoice_due_days", "status", "notes",
    }),
    required_on_create=frozenset({"seller_id", "buyer_id"}),
    non_negative_fields=frozenset({"weight", "freight", "commission_rate", "invoice_due_days"}),
    choices={"status": SALE_STATUSES},
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/v1/users/<user_id>")


@sales_bp.get("/sales")
@require_auth
@require_owner
def list_sales_route(user_id: str):
    """
    List the user's sales across books.

    Query params:
    - book_id: restrict to one book
    - status: PENDING | PARTIALLY_PAID | PAID | OVERDUE
    """
    try:
        sales = sale_service.list_sales(
            user_id,
            book_id=request.args.get("book_id"),
            status=request.args.get("status"),
        )
        return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@sales_bp.get("/books/<book_id>/sales")
@require_auth
@require_owner
def list_book_sales_route(user_id: str, book_id: str):
    try:
        sales = sale_service.list_sales(user_id, book_id=book_id, status=request.args.get("status"))
        return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@sales_bp.post("/books/<book_id>/sales")
@require_auth
@require_owner
@enforce_plan_limit(ResourceType.INVOICES)
def create_sale_route(user_id: str, book_id: str):
    try:
        patch = validate_payload(model=Sale, payload=request.get_json(silent=True), policy=SALE_POLICY, partial=False)
        sale = sale_service.create_sale(user_id, book_id, patch)
        return jsonify({"sale": sale.to_dict()}), 201
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/sales/<sale_id>")
@require_auth
@require_owner
def get_sale_route(user_id: str, sale_id: str):
    """Sale header with parties, products, goods returns and payments."""
    try:
        sale = require_sale(user_id, sale_id)
        return jsonify({"sale": sale_service.sale_summary(sale)}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@sales_bp.put("/sales/<sale_id>")
@require_auth
@require_owner
def update_sale_route(user_id: str, sale_id: str):
    try:
        patch = validate_payload(model=Sale, payload=request.get_json(silent=True), policy=SALE_POLICY, partial=True)
        sale = sale_service.update_sale(user_id, sale_id, patch)
        return jsonify({"sale": sale.to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/sales/<sale_id>")
@require_auth
@require_owner
def delete_sale_route(user_id: str, sale_id: str):
    try:
        sale_service.delete_sale(user_id, sale_id)
        return jsonify({"message": "Sale deleted"}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/sales/<sale_id>/invoice.pdf")
@require_auth
@require_owner
def invoice_pdf_route(user_id: str, sale_id: str):
    try:
        sale = require_sale(user_id, sale_id)
        pdf = render_invoice_pdf(sale)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to render invoice PDF")
        return jsonify({"error": "Internal server error"}), 500

    filename = f"invoice-{sale.invoice_number or sale.id}.pdf"
    return Response(
        pdf,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@sales_bp.post("/sales/<sale_id>/invoice-mail")
@require_auth
@require_owner
@require_feature(Feature.BULK_EMAIL)
def invoice_mail_route(user_id: str, sale_id: str):
    """
    Email the invoice PDF.

    Body (optional):
    - recipients: list of addresses (default: buyer and seller emails)
    - message: extra text for the mail body

    Returns:
    - 200: at least one recipient accepted the mail
    - 502: no recipient could be reached
    """
    data = request.get_json(silent=True) or {}
    try:
        sale = require_sale(user_id, sale_id)
        result = send_invoice_email(
            sale,
            recipients=data.get("recipients"),
            message=str(data.get("message") or ""),
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to email invoice")
        return jsonify({"error": "Internal server error"}), 500

    if not result["delivered"]:
        return jsonify({"error": "Failed to send invoice email", "result": result}), 502
    return jsonify({"message": "Invoice email sent successfully", "result": result}), 200
