# Overview: Service-layer operations for sales (invoices); header fields only, totals belong to line_item_service.

"""
Sale documents.

Sale headers carry paperwork (lorry receipt, e-way bill, challan), the
invoice number and date, the parties and the commission terms. The four
invoice_*_amount totals are derived from products and are not writable here.

A sale created without an invoice date is dated now, so it counts towards
the monthly invoice limit.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Sale
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError
from .concurrency import run_with_retry
from .ownership_service import require_book, require_client, require_sale, sales_query


def _ensure_unique_invoice_number(user_id: str, invoice_number, exclude_id: str | None = None) -> None:
    if not invoice_number:
        return
    query = sales_query(user_id).filter(Sale.invoice_number == invoice_number)
    if exclude_id is not None:
        query = query.filter(Sale.id != exclude_id)
    if query.first():
        raise ConflictError("Sale with same invoice number already exists")


def _check_parties(user_id: str, seller_id, buyer_id) -> None:
    if seller_id == buyer_id:
        raise ValidationError("seller_id and buyer_id must be different clients")
    require_client(user_id, seller_id)
    require_client(user_id, buyer_id)


def list_sales(user_id: str, *, book_id: str | None = None, status: str | None = None) -> list[Sale]:
    query = sales_query(user_id)
    if book_id is not None:
        require_book(user_id, book_id)
        query = query.filter(Sale.book_id == book_id)
    if status:
        query = query.filter(Sale.status == status)
    return query.order_by(Sale.invoice_date.desc(), Sale.created_at.desc()).all()


def create_sale(user_id: str, book_id: str, patch: dict) -> Sale:
    book = require_book(user_id, book_id)
    _check_parties(user_id, patch.get("seller_id"), patch.get("buyer_id"))
    _ensure_unique_invoice_number(user_id, patch.get("invoice_number"))
    if patch.get("invoice_date") is None:
        patch = {**patch, "invoice_date": utcnow()}

    sale = Sale(book_id=book.id, **patch)
    db.session.add(sale)
    db.session.commit()
    return sale


def update_sale(user_id: str, sale_id: str, patch: dict, *, book_id: str | None = None) -> Sale:
    def _op():
        sale = require_sale(user_id, sale_id, book_id=book_id, lock=True)

        if "seller_id" in patch or "buyer_id" in patch:
            _check_parties(
                user_id,
                patch.get("seller_id", sale.seller_id),
                patch.get("buyer_id", sale.buyer_id),
            )
        if "invoice_number" in patch:
            _ensure_unique_invoice_number(user_id, patch["invoice_number"], exclude_id=sale.id)

        for key, value in patch.items():
            setattr(sale, key, value)
        db.session.commit()
        return sale

    # Header edits bump version_id too, so they retry like line-item writes
    return run_with_retry(_op)


def delete_sale(user_id: str, sale_id: str, *, book_id: str | None = None) -> None:
    """Removes the sale with its products, goods returns and payments."""
    sale = require_sale(user_id, sale_id, book_id=book_id)
    db.session.delete(sale)
    db.session.commit()


def sale_summary(sale: Sale) -> dict:
    """Header plus children, as returned by the sale detail endpoint."""
    paid = sum(payment.amount or 0 for payment in sale.payments)
    data = sale.to_dict()
    data.update({
        "seller": sale.seller.to_dict() if sale.seller else None,
        "buyer": sale.buyer.to_dict() if sale.buyer else None,
        "products": [product.to_dict() for product in sale.products],
        "goods_returns": [goods_return.to_dict() for goods_return in sale.goods_returns],
        "payments": [payment.to_dict() for payment in sale.payments],
        "amount_paid": round(paid, 2),
    })
    return data
