# Overview: Counts the resources a user holds, as measured against plan limits.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Book, Client, Sale
from ..time_utils import month_bounds, utcnow
from .plans import ResourceType


def count_clients(user_id: str) -> int:
    return db.session.query(Client).filter(Client.user_id == user_id).count()


def count_books(user_id: str) -> int:
    return db.session.query(Book).filter(Book.user_id == user_id).count()


def count_invoices_this_month(user_id: str, now: datetime | None = None) -> int:
    """
    Sales in the user's books dated in the current calendar month.

    A sale is dated by invoice_date, or by created_at when it has none.
    """
    start, end = month_bounds(now or utcnow())
    dated_this_month = db.and_(Sale.invoice_date >= start, Sale.invoice_date < end)
    undated_this_month = db.and_(
        Sale.invoice_date.is_(None),
        Sale.created_at >= start,
        Sale.created_at < end,
    )
    return (
        db.session.query(Sale)
        .join(Book, Sale.book_id == Book.id)
        .filter(Book.user_id == user_id, db.or_(dated_this_month, undated_this_month))
        .count()
    )


def count_usage(user_id: str, resource: ResourceType, now: datetime | None = None) -> int:
    resource = ResourceType(resource)
    if resource is ResourceType.CLIENTS:
        return count_clients(user_id)
    if resource is ResourceType.BOOKS:
        return count_books(user_id)
    return count_invoices_this_month(user_id, now)
