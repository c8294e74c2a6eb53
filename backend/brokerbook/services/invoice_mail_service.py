# Overview: Emails a sale's rendered invoice PDF to its parties or to given addresses.

from __future__ import annotations

import logging
import re

from ..models import Sale
from ..time_utils import to_utc_z, utcnow
from ..validation import ValidationError
from .invoice_pdf_service import render_invoice_pdf
from .notification_service import NotificationError, email_channel

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def default_recipients(sale: Sale) -> list[str]:
    """Buyer and seller addresses on file, de-duplicated, in that order."""
    addresses = []
    for party in (sale.buyer, sale.seller):
        if party is not None and party.email and party.email not in addresses:
            addresses.append(party.email)
    return addresses


def _clean_recipients(recipients) -> list[str]:
    if isinstance(recipients, str):
        recipients = recipients.split(",")
    if not isinstance(recipients, (list, tuple)):
        raise ValidationError("recipients must be a list of email addresses")

    cleaned = []
    for value in recipients:
        address = str(value or "").strip()
        if not address:
            continue
        if not EMAIL_RE.match(address):
            raise ValidationError(f"Invalid email format: {address}")
        if address not in cleaned:
            cleaned.append(address)
    return cleaned


def invoice_mail_body(sale: Sale, sender_name: str, message: str = "") -> str:
    number = sale.invoice_number or sale.id
    lines = [
        "Dear Customer,",
        "",
        f"Please find attached invoice #{number} from {sender_name}.",
        f"Invoice amount: Rs. {float(sale.invoice_net_amount or 0):,.2f}",
    ]
    if sale.invoice_date is not None:
        lines.append(f"Invoice date: {sale.invoice_date.strftime('%d/%m/%Y')}")
    if message:
        lines.extend(["", message.strip()])
    lines.extend(["", "Thank you!", sender_name])
    return "\n".join(lines)


def send_invoice_email(sale: Sale, *, recipients=None, message: str = "", email=None) -> dict:
    """
    Render the invoice and mail it as a PDF attachment.

    recipients defaults to the buyer and seller. Each address is sent to on
    its own; one failing address is logged and reported, and does not stop
    the rest.

    Returns {"invoice_number", "recipients": {address: bool}, "delivered", "sent_at"}.
    """
    email = email or email_channel()
    addresses = default_recipients(sale) if recipients is None else _clean_recipients(recipients)
    if not addresses:
        raise ValidationError("No recipient email address for this sale")

    broker = sale.book.user if sale.book else None
    sender_name = broker.name if broker else "BrokerBook"
    number = sale.invoice_number or sale.id

    pdf = render_invoice_pdf(sale)
    attachment = (f"invoice-{number}.pdf", pdf, "application/pdf")
    subject = f"Invoice #{number} from {sender_name}"
    body = invoice_mail_body(sale, sender_name, message)

    results = {}
    for address in addresses:
        try:
            results[address] = bool(email.send(address, subject, body, attachments=[attachment]))
        except NotificationError:
            logger.exception("Failed to email invoice %s to %s", number, address)
            results[address] = False

    delivered = sum(1 for sent in results.values() if sent)
    logger.info("Invoice %s emailed to %d of %d recipients", number, delivered, len(results))
    return {
        "invoice_number": sale.invoice_number,
        "recipients": results,
        "delivered": delivered,
        "sent_at": to_utc_z(utcnow()),
    }
