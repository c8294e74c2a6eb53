# Overview: Service-layer operations for sale payments and the commissions collected against them.

from __future__ import annotations

from ..extensions import db
from ..models import SalePayment, SaleCommission
from .ownership_service import require_sale, require_sale_payment, require_sale_commission


def list_payments(user_id: str, sale_id: str) -> list[SalePayment]:
    sale = require_sale(user_id, sale_id)
    return (
        db.session.query(SalePayment)
        .filter_by(sale_id=sale.id)
        .order_by(SalePayment.created_at.asc())
        .all()
    )


def create_payment(user_id: str, sale_id: str, patch: dict) -> SalePayment:
    sale = require_sale(user_id, sale_id)
    payment = SalePayment(sale_id=sale.id, **patch)
    db.session.add(payment)
    db.session.commit()
    return payment


def update_payment(user_id: str, payment_id: str, patch: dict, *, sale_id: str | None = None) -> SalePayment:
    payment = require_sale_payment(user_id, payment_id, sale_id=sale_id)
    for key, value in patch.items():
        setattr(payment, key, value)
    db.session.commit()
    return payment


def delete_payment(user_id: str, payment_id: str, *, sale_id: str | None = None) -> None:
    """Deletes the payment and the commissions recorded against it."""
    payment = require_sale_payment(user_id, payment_id, sale_id=sale_id)
    db.session.delete(payment)
    db.session.commit()


def list_commissions(user_id: str, payment_id: str) -> list[SaleCommission]:
    payment = require_sale_payment(user_id, payment_id)
    return (
        db.session.query(SaleCommission)
        .filter_by(sale_payment_id=payment.id)
        .order_by(SaleCommission.created_at.asc())
        .all()
    )


def create_commission(user_id: str, payment_id: str, patch: dict) -> SaleCommission:
    payment = require_sale_payment(user_id, payment_id)
    commission = SaleCommission(sale_payment_id=payment.id, **patch)
    db.session.add(commission)
    db.session.commit()
    return commission


def update_commission(
    user_id: str,
    commission_id: str,
    patch: dict,
    *,
    payment_id: str | None = None,
) -> SaleCommission:
    commission = require_sale_commission(user_id, commission_id, sale_payment_id=payment_id)
    for key, value in patch.items():
        setattr(commission, key, value)
    db.session.commit()
    return commission


def delete_commission(user_id: str, commission_id: str, *, payment_id: str | None = None) -> None:
    commission = require_sale_commission(user_id, commission_id, sale_payment_id=payment_id)
    db.session.delete(commission)
    db.session.commit()
