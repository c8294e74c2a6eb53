# Overview: Commission payment reminders; picks due sales and notifies seller and broker.

"""
Payment reminders.

A sale is reminded about when it is still open (PENDING, PARTIALLY_PAID,
OVERDUE) and its due date (invoice_date + invoice_due_days) is exactly 10,
5, 1 or 0 days away, or already past. Days are counted with ceil, so a due
date later today is "0 days".

The seller owes the commission and the broker (the book's owner) collects
it; both get a WhatsApp message and an email. Every send is best effort:
one failing channel or recipient is logged and never stops the others, and
the outcome is reported per channel.

Reminders only go out for users whose plan includes payment reminders;
WhatsApp additionally needs WhatsApp automation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..extensions import db
from ..models import Book, Sale
from ..models.sales import DEFAULT_INVOICE_DUE_DAYS, OPEN_SALE_STATUSES
from ..time_utils import days_between, utcnow
from .amounts import commission_amount
from .notification_service import NotificationError, email_channel, whatsapp_channel
from .ownership_service import require_sale
from .plans import Feature, PlanCatalog, current_plan_catalog
from .subscription_service import resolve_active_plan

logger = logging.getLogger(__name__)

DEFAULT_COMMISSION_RATE = 2.0
REMINDER_DAYS = frozenset({10, 5, 1, 0})
UPCOMING_WINDOW_DAYS = 90


@dataclass
class ReminderCandidate:
    sale: Sale
    due_date: datetime
    days_until_due: int
    commission_rate: float
    commission_amount: float

    @property
    def is_overdue(self) -> bool:
        return self.days_until_due < 0

    @property
    def seller(self):
        return self.sale.seller

    @property
    def buyer(self):
        return self.sale.buyer

    @property
    def broker(self):
        return self.sale.book.user if self.sale.book else None

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale.id,
            "invoice_number": self.sale.invoice_number,
            "invoice_net_amount": self.sale.invoice_net_amount,
            "status": self.sale.status,
            "due_date": self.due_date.date().isoformat(),
            "days_until_due": self.days_until_due,
            "is_overdue": self.is_overdue,
            "commission_rate": self.commission_rate,
            "commission_amount": self.commission_amount,
            "seller": _party(self.seller),
            "buyer": _party(self.buyer),
            "broker": _party(self.broker),
        }


@dataclass
class ReminderResult:
    sale_id: str
    invoice_number: str | None
    whatsapp: bool = False
    email: dict = field(default_factory=lambda: {"seller": False, "broker": False})

    @property
    def delivered(self) -> bool:
        return self.email["seller"] or self.email["broker"]

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "invoice_number": self.invoice_number,
            "whatsapp": self.whatsapp,
            "email": dict(self.email),
        }


def _party(party) -> dict | None:
    if party is None:
        return None
    return {"id": party.id, "name": party.name, "email": party.email, "phone": party.phone}


def days_until(due_date: datetime, now: datetime) -> int:
    return math.ceil(days_between(due_date, now))


def needs_reminder(days_until_due: int) -> bool:
    return days_until_due in REMINDER_DAYS or days_until_due < 0


def build_candidate(sale: Sale, now: datetime) -> ReminderCandidate:
    invoice_date = sale.invoice_date or sale.created_at
    due_days = DEFAULT_INVOICE_DUE_DAYS if sale.invoice_due_days is None else sale.invoice_due_days
    due_date = invoice_date + timedelta(days=due_days)
    rate = DEFAULT_COMMISSION_RATE if sale.commission_rate is None else sale.commission_rate
    return ReminderCandidate(
        sale=sale,
        due_date=due_date,
        days_until_due=days_until(due_date, now),
        commission_rate=rate,
        commission_amount=commission_amount(sale.invoice_net_amount, rate),
    )


def _open_sales(user_id: str | None = None) -> list[Sale]:
    query = (
        db.session.query(Sale)
        .join(Book, Sale.book_id == Book.id)
        .filter(Sale.status.in_(OPEN_SALE_STATUSES))
    )
    if user_id is not None:
        query = query.filter(Book.user_id == user_id)
    return query.all()


def sales_due_for_reminder(user_id: str | None = None, now: datetime | None = None) -> list[ReminderCandidate]:
    now = now or utcnow()
    due = []
    for sale in _open_sales(user_id):
        if sale.invoice_date is None:
            continue
        candidate = build_candidate(sale, now)
        if needs_reminder(candidate.days_until_due):
            due.append(candidate)
    return due


def upcoming_payments(user_id: str, now: datetime | None = None) -> list[ReminderCandidate]:
    """Open sales due within the next 90 days (or overdue), overdue first."""
    now = now or utcnow()
    upcoming = [
        candidate
        for candidate in (build_candidate(sale, now) for sale in _open_sales(user_id))
        if candidate.days_until_due <= UPCOMING_WINDOW_DAYS
    ]
    upcoming.sort(key=lambda c: (not c.is_overdue, c.days_until_due))
    return upcoming


def _money(value) -> str:
    return f"₹{float(value or 0):,.2f}"


def _timing_line(candidate: ReminderCandidate) -> str:
    days = candidate.days_until_due
    if days < 0:
        return f"OVERDUE by {abs(days)} day(s)"
    if days == 0:
        return "Due TODAY"
    return f"Due in {days} day(s)"


def seller_message(candidate: ReminderCandidate) -> str:
    sale = candidate.sale
    broker = candidate.broker
    return (
        f"Dear {candidate.seller.name},\n\n"
        f"Commission for sale invoice #{sale.invoice_number or sale.id} is pending.\n\n"
        f"Invoice amount: {_money(sale.invoice_net_amount)}\n"
        f"Commission rate: {candidate.commission_rate}%\n"
        f"Commission due: {_money(candidate.commission_amount)}\n"
        f"Due date: {candidate.due_date.strftime('%d/%m/%Y')}\n"
        f"{_timing_line(candidate)}\n\n"
        f"Broker: {broker.name if broker else 'N/A'} ({(broker.email if broker else None) or 'N/A'})\n\n"
        "Please process the commission payment at the earliest.\n\nThank you!"
    )


def broker_message(candidate: ReminderCandidate) -> str:
    sale = candidate.sale
    return (
        f"Dear {candidate.broker.name},\n\n"
        f"A commission payment is due for sale invoice #{sale.invoice_number or sale.id}.\n\n"
        f"Client: {candidate.seller.name}\n"
        f"Invoice amount: {_money(sale.invoice_net_amount)}\n"
        f"Commission rate: {candidate.commission_rate}%\n"
        f"Commission amount: {_money(candidate.commission_amount)}\n"
        f"Due date: {candidate.due_date.strftime('%d/%m/%Y')}\n"
        f"{_timing_line(candidate)}\n\n"
        "Commission collection pending."
    )


def reminder_subject(candidate: ReminderCandidate) -> str:
    number = candidate.sale.invoice_number or candidate.sale.id
    if candidate.is_overdue:
        return f"OVERDUE: commission payment for invoice #{number}"
    if candidate.days_until_due == 0:
        return f"Due today: commission payment for invoice #{number}"
    return f"Reminder: commission payment for invoice #{number} due in {candidate.days_until_due} day(s)"


def _try_send(label: str, send, *args) -> bool:
    try:
        return bool(send(*args))
    except NotificationError:
        logger.exception("Failed to send %s", label)
        return False


def send_reminder(candidate: ReminderCandidate, *, include_whatsapp: bool = True, email=None, whatsapp=None) -> ReminderResult:
    """Notify seller and broker for one sale over every available channel."""
    email = email or email_channel()
    whatsapp = whatsapp or whatsapp_channel()
    sale = candidate.sale
    result = ReminderResult(sale_id=sale.id, invoice_number=sale.invoice_number)

    recipients = (
        ("seller", candidate.seller, seller_message),
        ("broker", candidate.broker, broker_message),
    )
    subject = reminder_subject(candidate)

    for role, party, render in recipients:
        if party is None:
            logger.warning("No %s for sale %s; skipping", role, sale.id)
            continue
        body = render(candidate)

        if include_whatsapp:
            if party.phone:
                sent = _try_send(f"WhatsApp reminder to {role} for sale {sale.id}", whatsapp.send, party.phone, body)
                result.whatsapp = result.whatsapp or sent
            else:
                logger.warning("%s %s has no phone number; skipping WhatsApp", role.capitalize(), party.name)

        if party.email:
            result.email[role] = _try_send(
                f"email reminder to {role} for sale {sale.id}", email.send, party.email, subject, body,
            )
        else:
            logger.warning("%s %s has no email; skipping email", role.capitalize(), party.name)

    return result


def _plan_allows(user_id: str, feature: Feature, catalog: PlanCatalog, cache: dict) -> bool:
    key = (user_id, feature)
    if key not in cache:
        plan = resolve_active_plan(user_id).plan_name
        cache[key] = catalog.limits_for(plan).allows(feature)
    return cache[key]


def send_payment_reminders(
    user_id: str | None = None,
    *,
    now: datetime | None = None,
    catalog: PlanCatalog | None = None,
    email=None,
    whatsapp=None,
) -> dict:
    """
    Send every reminder due today. user_id=None covers all users (daily job).

    Returns {"total", "successful", "failed", "skipped", "results"}; a sale
    counts as successful when the seller or broker email went out.
    """
    catalog = catalog or current_plan_catalog()
    cache: dict = {}
    results: list[ReminderResult] = []
    skipped = 0

    for candidate in sales_due_for_reminder(user_id, now):
        owner_id = candidate.sale.book.user_id
        if not _plan_allows(owner_id, Feature.PAYMENT_REMINDERS, catalog, cache):
            skipped += 1
            continue
        include_whatsapp = _plan_allows(owner_id, Feature.WHATSAPP_AUTOMATION, catalog, cache)
        results.append(send_reminder(candidate, include_whatsapp=include_whatsapp, email=email, whatsapp=whatsapp))

    successful = sum(1 for r in results if r.delivered)
    logger.info(
        "Payment reminders: %d processed, %d delivered, %d skipped by plan",
        len(results), successful, skipped,
    )
    return {
        "total": len(results),
        "successful": successful,
        "failed": len(results) - successful,
        "skipped": skipped,
        "results": [r.to_dict() for r in results],
    }


def send_reminder_for_sale(
    user_id: str,
    sale_id: str,
    *,
    now: datetime | None = None,
    catalog: PlanCatalog | None = None,
    email=None,
    whatsapp=None,
) -> ReminderResult:
    """Manual reminder for one sale, regardless of the 10/5/1/0 schedule."""
    catalog = catalog or current_plan_catalog()
    sale = require_sale(user_id, sale_id)
    candidate = build_candidate(sale, now or utcnow())
    include_whatsapp = catalog.limits_for(resolve_active_plan(user_id).plan_name).allows(
        Feature.WHATSAPP_AUTOMATION
    )
    return send_reminder(candidate, include_whatsapp=include_whatsapp, email=email, whatsapp=whatsapp)
