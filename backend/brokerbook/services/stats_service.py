# Overview: Dashboard figures and per-resource plan usage for the user's books, clients and sales.

"""
Statistics.

The dashboard adds up the user's sales, payments and commissions (for one
book or across all of them) and breaks sales and payments down over the
last 12 calendar months. Due dates and expected commission come from the
same rules payment reminders use, so both screens agree on what is owed.

The resource stats answer "can I add another one?" for books, clients and
sales against the active plan.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

from ..extensions import db
from ..models import Sale, SaleCommission, SalePayment
from ..time_utils import add_months, month_bounds, to_utc_z, utcnow
from .amounts import round_money
from .limit_service import usage_entry
from .ownership_service import require_book, sales_query
from .plans import Feature, PlanCatalog, ResourceType, current_plan_catalog
from .reminder_service import build_candidate
from .subscription_service import resolve_active_plan
from .usage_service import count_books, count_clients, count_invoices_this_month

MONTHS_OF_HISTORY = 12
DUE_SOON_DAYS = 30
RECENTLY_OVERDUE_DAYS = 15
LATEST_INVOICES = 5


def _party(client) -> dict | None:
    if client is None:
        return None
    return {"id": client.id, "name": client.name}


def _invoice_entry(candidate) -> dict:
    sale = candidate.sale
    return {
        "id": sale.id,
        "invoice_number": sale.invoice_number,
        "invoice_date": to_utc_z(sale.invoice_date),
        "buyer": _party(sale.buyer),
        "seller": _party(sale.seller),
        "invoice_net_amount": sale.invoice_net_amount,
        "status": sale.status,
        "due_date": to_utc_z(candidate.due_date),
    }


def _sum(values) -> float:
    return round_money(sum(v or 0 for v in values))


def monthly_breakdown(sales: list[Sale], payments: list[SalePayment], now: datetime) -> list[dict]:
    """Sales by invoice_date and payments by created_at for the last 12 months, oldest first."""
    current_start, _ = month_bounds(now)
    months = []
    for offset in range(MONTHS_OF_HISTORY - 1, -1, -1):
        start = add_months(current_start, -offset)
        end = add_months(start, 1)
        months.append({
            "month": calendar.month_abbr[start.month],
            "year": start.year,
            "sales": _sum(
                s.invoice_net_amount for s in sales
                if s.invoice_date is not None and start <= s.invoice_date < end
            ),
            "payments": _sum(p.amount for p in payments if start <= p.created_at < end),
        })
    return months


def dashboard_stats(user_id: str, *, book_id: str | None = None, now: datetime | None = None) -> dict:
    """
    Totals, monthly history and the invoices that need attention.

    - total_amount_due: net sales minus payments received, floored at 0
    - total_commission_due: expected commission minus commission collected, floored at 0
    - latest_due_invoices: unpaid, due within the next 30 days (overdue included), soonest first
    - latest_overdue_invoices: unpaid, fell due in the last 15 days, most recent first
    """
    now = now or utcnow()
    query = sales_query(user_id)
    if book_id is not None:
        require_book(user_id, book_id)
        query = query.filter(Sale.book_id == book_id)
    sales = query.all()
    sale_ids = [sale.id for sale in sales]

    payments = []
    commissions = []
    if sale_ids:
        payments = db.session.query(SalePayment).filter(SalePayment.sale_id.in_(sale_ids)).all()
        payment_ids = [payment.id for payment in payments]
        if payment_ids:
            commissions = (
                db.session.query(SaleCommission)
                .filter(SaleCommission.sale_payment_id.in_(payment_ids))
                .all()
            )

    candidates = [build_candidate(sale, now) for sale in sales]
    total_sales = _sum(sale.invoice_net_amount for sale in sales)
    total_payments = _sum(payment.amount for payment in payments)
    total_commission = _sum(commission.amount for commission in commissions)
    expected_commission = _sum(c.commission_amount for c in candidates)

    unpaid = [c for c in candidates if c.sale.status != "PAID"]
    due_soon = sorted(
        (c for c in unpaid if c.due_date <= now + timedelta(days=DUE_SOON_DAYS)),
        key=lambda c: c.due_date,
    )
    recently_overdue = sorted(
        (c for c in unpaid if now - timedelta(days=RECENTLY_OVERDUE_DAYS) <= c.due_date < now),
        key=lambda c: c.due_date,
        reverse=True,
    )

    return {
        "stats": {
            "total_clients": count_clients(user_id),
            "total_sales": total_sales,
            "total_payments": total_payments,
            "total_commission": total_commission,
            "total_amount_due": round_money(max(0.0, total_sales - total_payments)),
            "total_commission_due": round_money(max(0.0, expected_commission - total_commission)),
        },
        "monthly_data": monthly_breakdown(sales, payments, now),
        "latest_due_invoices": [_invoice_entry(c) for c in due_soon[:LATEST_INVOICES]],
        "latest_overdue_invoices": [_invoice_entry(c) for c in recently_overdue[:LATEST_INVOICES]],
    }


def _plan_limits(user_id: str, catalog: PlanCatalog | None):
    catalog = catalog or current_plan_catalog()
    plan = resolve_active_plan(user_id).plan_name
    return plan, catalog.limits_for(plan)


def book_stats(user_id: str, *, catalog: PlanCatalog | None = None) -> dict:
    plan, limits = _plan_limits(user_id, catalog)
    data = usage_entry(limits, ResourceType.BOOKS, count_books(user_id))
    data["plan_name"] = plan.value
    return data


def client_stats(user_id: str, *, catalog: PlanCatalog | None = None) -> dict:
    plan, limits = _plan_limits(user_id, catalog)
    data = usage_entry(limits, ResourceType.CLIENTS, count_clients(user_id))
    data["plan_name"] = plan.value
    return data


def sale_stats(
    user_id: str,
    *,
    book_id: str | None = None,
    catalog: PlanCatalog | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Sale counts for one book (or all books) plus the monthly invoice allowance.

    current_count is book-specific when book_id is given; the limit fields
    always refer to invoices this month across every book.
    """
    plan, limits = _plan_limits(user_id, catalog)
    total_count = sales_query(user_id).count()
    if book_id is not None:
        require_book(user_id, book_id)
        current_count = sales_query(user_id).filter(Sale.book_id == book_id).count()
    else:
        current_count = total_count

    month_count = count_invoices_this_month(user_id, now)
    data = usage_entry(limits, ResourceType.INVOICES, month_count)
    data.update({
        "current_count": current_count,
        "total_count": total_count,
        "month_count": month_count,
        "is_book_specific": book_id is not None,
        "plan_name": plan.value,
    })
    return data


def user_plan_stats(user_id: str, *, catalog: PlanCatalog | None = None) -> dict:
    """Active plan and the feature flags the UI switches on."""
    plan, limits = _plan_limits(user_id, catalog)
    return {
        "plan_name": plan.value,
        "can_send_reminders": limits.allows(Feature.PAYMENT_REMINDERS),
        "features": {feature.value: limits.allows(feature) for feature in Feature},
    }
