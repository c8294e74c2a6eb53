# Overview: Service-layer operations for invoice line items; keeps parent Sale and GoodsReturn totals in step.

"""
Line items and their parent aggregates.

Every write to a Product changes the owning Sale's invoice_*_amount totals,
and every write to a GoodsReturnProduct changes its GoodsReturn's totals.
Each operation is one unit of work:

1. lock the parent row (SELECT ... FOR UPDATE)
2. price the item with amounts.compute_amounts
3. fold (new - old) into the parent with amounts.apply_line_item_delta
4. write item and parent, commit once

The parent's version_id turns a concurrent writer that slipped past the
row lock into a StaleDataError, which run_with_retry replays from step 1.

Deleting an item subtracts its amounts from the parent, so
parent.net == sum(children.net) holds after any sequence of writes.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Product, GoodsReturnProduct, Sale, GoodsReturn
from ..validation import ConflictError, ValidationError
from .amounts import LineAmounts, compute_amounts, apply_line_item_delta, sum_amounts
from .concurrency import run_with_retry
from .ownership_service import (
    require_sale, require_product, require_goods_return, require_return_product,
)

PRICING_FIELDS = frozenset({"quantity", "rate", "discount_rate", "gst_rate"})

PRODUCT_DEFAULTS = {
    "quantity": 0.0,
    "unit": "Nos",
    "rate": 0.0,
    "gst_rate": 0.0,
    "discount_rate": 0.0,
}


def _amount_columns(amounts: LineAmounts) -> dict:
    return {
        "gross_amount": amounts.gross,
        "discount_amount": amounts.discount,
        "tax_amount": amounts.tax,
        "net_amount": amounts.net,
    }


def _sale_total_columns(totals: LineAmounts) -> dict:
    return {
        "invoice_gross_amount": totals.gross,
        "invoice_discount_amount": totals.discount,
        "invoice_tax_amount": totals.tax,
        "invoice_net_amount": totals.net,
    }


def _assign(row, values: dict) -> None:
    for key, value in values.items():
        setattr(row, key, value)


def _price_product(values: dict) -> LineAmounts:
    return compute_amounts(
        values.get("rate"),
        values.get("quantity"),
        values.get("discount_rate"),
        values.get("gst_rate"),
    )


def _price_return(product: Product, quantity) -> LineAmounts:
    return compute_amounts(product.rate, quantity, product.discount_rate, product.gst_rate)


# ---------------------------------------------------------------------------
# Products -> Sale
# ---------------------------------------------------------------------------

def create_product(user_id: str, sale_id: str, patch: dict, *, book_id: str | None = None) -> Product:
    def _op():
        sale = require_sale(user_id, sale_id, book_id=book_id, lock=True)

        values = {**PRODUCT_DEFAULTS, **patch}
        amounts = _price_product(values)
        product = Product(sale_id=sale.id, **values, **_amount_columns(amounts))

        totals = apply_line_item_delta(sale.totals, None, amounts)
        _assign(sale, _sale_total_columns(totals))

        db.session.add(product)
        db.session.commit()
        return product

    return run_with_retry(_op)


def update_product(user_id: str, product_id: str, patch: dict, *, sale_id: str | None = None) -> Product:
    """Apply only the fields present in `patch`; reprice when a pricing field is among them."""
    def _op():
        product = require_product(user_id, product_id, sale_id=sale_id)
        sale = require_sale(user_id, product.sale_id, lock=True)

        changes = dict(patch)
        if PRICING_FIELDS & patch.keys():
            merged = {field: getattr(product, field) for field in PRICING_FIELDS}
            merged.update({k: v for k, v in patch.items() if k in PRICING_FIELDS})
            old, new = product.amounts, _price_product(merged)
            changes.update(_amount_columns(new))
            _assign(sale, _sale_total_columns(apply_line_item_delta(sale.totals, old, new)))

        _assign(product, changes)
        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(user_id: str, product_id: str, *, sale_id: str | None = None) -> None:
    def _op():
        product = require_product(user_id, product_id, sale_id=sale_id)
        if product.return_lines:
            raise ConflictError("Product has goods return entries; remove them first")
        sale = require_sale(user_id, product.sale_id, lock=True)

        _assign(sale, _sale_total_columns(apply_line_item_delta(sale.totals, product.amounts, None)))
        db.session.delete(product)
        db.session.commit()

    run_with_retry(_op)


# ---------------------------------------------------------------------------
# Goods return products -> GoodsReturn
# ---------------------------------------------------------------------------

def create_return_product(
    user_id: str,
    goods_return_id: str,
    patch: dict,
    *,
    sale_id: str | None = None,
) -> GoodsReturnProduct:
    if patch.get("product_id") is None or patch.get("quantity") is None:
        raise ValidationError("product_id and quantity are required")

    def _op():
        goods_return = require_goods_return(user_id, goods_return_id, sale_id=sale_id, lock=True)
        # Returned products must come from the sale being returned against
        product = require_product(user_id, patch["product_id"], sale_id=goods_return.sale_id)

        amounts = _price_return(product, patch["quantity"])
        line = GoodsReturnProduct(
            goods_return_id=goods_return.id,
            product_id=product.id,
            quantity=patch["quantity"],
            **_amount_columns(amounts),
        )
        _assign(goods_return, _amount_columns(apply_line_item_delta(goods_return.totals, None, amounts)))

        db.session.add(line)
        db.session.commit()
        return line

    return run_with_retry(_op)


def update_return_product(
    user_id: str,
    line_id: str,
    patch: dict,
    *,
    goods_return_id: str | None = None,
) -> GoodsReturnProduct:
    def _op():
        line = require_return_product(user_id, line_id, goods_return_id=goods_return_id)
        goods_return = require_goods_return(user_id, line.goods_return_id, lock=True)

        changes = dict(patch)
        if "product_id" in patch or "quantity" in patch:
            product = require_product(
                user_id, patch.get("product_id", line.product_id), sale_id=goods_return.sale_id,
            )
            new = _price_return(product, patch.get("quantity", line.quantity))
            changes.update(_amount_columns(new))
            totals = apply_line_item_delta(goods_return.totals, line.amounts, new)
            _assign(goods_return, _amount_columns(totals))

        _assign(line, changes)
        db.session.commit()
        return line

    return run_with_retry(_op)


def delete_return_product(user_id: str, line_id: str, *, goods_return_id: str | None = None) -> None:
    def _op():
        line = require_return_product(user_id, line_id, goods_return_id=goods_return_id)
        goods_return = require_goods_return(user_id, line.goods_return_id, lock=True)

        totals = apply_line_item_delta(goods_return.totals, line.amounts, None)
        _assign(goods_return, _amount_columns(totals))
        db.session.delete(line)
        db.session.commit()

    run_with_retry(_op)


# ---------------------------------------------------------------------------
# Repair
# ---------------------------------------------------------------------------

def recalculate_sale_totals(sale: Sale) -> LineAmounts:
    """Rebuild a sale's totals from its products (no commit)."""
    totals = sum_amounts(product.amounts for product in sale.products)
    _assign(sale, _sale_total_columns(totals))
    return totals


def recalculate_return_totals(goods_return: GoodsReturn) -> LineAmounts:
    """Rebuild a goods return's totals from its lines (no commit)."""
    totals = sum_amounts(line.amounts for line in goods_return.lines)
    _assign(goods_return, _amount_columns(totals))
    return totals


def reconcile_all_totals() -> int:
    """Recompute every stored aggregate; returns how many rows changed."""
    changed = 0
    for sale in db.session.query(Sale).all():
        before = sale.totals
        if recalculate_sale_totals(sale) != before:
            changed += 1
    for goods_return in db.session.query(GoodsReturn).all():
        before = goods_return.totals
        if recalculate_return_totals(goods_return) != before:
            changed += 1
    db.session.commit()
    return changed
