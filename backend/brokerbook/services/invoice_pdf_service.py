"""Invoice PDF rendering for sales."""

from __future__ import annotations

from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..models import Sale

# Built-in Helvetica has no rupee glyph
CURRENCY = "Rs."


def _money(value) -> str:
    return f"{CURRENCY} {float(value or 0):,.2f}"


def _party_block(title: str, party, styles) -> list:
    if party is None:
        return [Paragraph(title, styles["PartyTitle"]), Paragraph("N/A", styles["Normal"])]
    lines = [party.name, party.address, party.phone, party.email]
    if party.gstin:
        lines.append(f"GSTIN: {party.gstin}")
    if party.pan:
        lines.append(f"PAN: {party.pan}")
    return [Paragraph(title, styles["PartyTitle"])] + [
        Paragraph(escape(line), styles["Normal"]) for line in lines if line
    ]


def render_invoice_pdf(sale: Sale) -> bytes:
    """Render a one-page A4 invoice for the sale and return the PDF bytes."""
    buffer = BytesIO()
    number = sale.invoice_number or sale.id

    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
        title=f"Invoice {number}",
        author=sale.book.user.name if sale.book and sale.book.user else "BrokerBook",
    )

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="InvoiceTitle", fontSize=16, fontName="Helvetica-Bold", alignment=TA_RIGHT))
    styles.add(ParagraphStyle(name="InvoiceInfo", fontSize=9, fontName="Helvetica", alignment=TA_RIGHT))
    styles.add(ParagraphStyle(name="PartyTitle", fontSize=10, fontName="Helvetica-Bold", spaceAfter=2))
    styles.add(ParagraphStyle(name="CellRight", fontSize=9, fontName="Helvetica", alignment=TA_RIGHT))

    elements = []

    info = [
        [Paragraph("TAX INVOICE", styles["InvoiceTitle"])],
        [Paragraph(f"# {escape(str(number))}", styles["InvoiceInfo"])],
    ]
    if sale.invoice_date:
        info.append([Paragraph(f"Date: {sale.invoice_date.strftime('%d %b %Y')}", styles["InvoiceInfo"])])
    if sale.e_way_bill_number:
        info.append([Paragraph(f"E-way bill: {escape(sale.e_way_bill_number)}", styles["InvoiceInfo"])])
    if sale.lorry_receipt_number:
        info.append([Paragraph(f"LR: {escape(sale.lorry_receipt_number)}", styles["InvoiceInfo"])])
    elements.append(Table(info, colWidths=[174 * mm]))
    elements.append(Spacer(1, 8 * mm))

    parties = Table(
        [[_party_block("SELLER", sale.seller, styles), _party_block("BUYER", sale.buyer, styles)]],
        colWidths=[87 * mm, 87 * mm],
    )
    parties.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    elements.append(parties)
    elements.append(Spacer(1, 8 * mm))

    rows = [["Item", "Qty", "Rate", "Disc %", "GST %", "Net"]]
    for product in sale.products:
        rows.append([
            Paragraph(escape(product.name), styles["Normal"]),
            f"{product.quantity:g} {product.unit}",
            _money(product.rate),
            f"{product.discount_rate:g}",
            f"{product.gst_rate:g}",
            _money(product.net_amount),
        ])
    items = Table(rows, colWidths=[60 * mm, 22 * mm, 28 * mm, 16 * mm, 16 * mm, 32 * mm], repeatRows=1)
    items.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#4F4F4F")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    elements.append(items)
    elements.append(Spacer(1, 6 * mm))

    totals = [
        ["Gross", _money(sale.invoice_gross_amount)],
        ["Discount", _money(sale.invoice_discount_amount)],
        ["Tax", _money(sale.invoice_tax_amount)],
        ["Net amount", _money(sale.invoice_net_amount)],
    ]
    paid = sum(payment.amount or 0 for payment in sale.payments)
    if paid:
        totals.append(["Received", _money(paid)])
        totals.append(["Balance", _money((sale.invoice_net_amount or 0) - paid)])
    totals_table = Table(totals, colWidths=[40 * mm, 40 * mm], hAlign="RIGHT")
    totals_table.setStyle(TableStyle([
        ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
        ("FONTNAME", (0, 3), (-1, 3), "Helvetica-Bold"),
        ("LINEABOVE", (0, 3), (-1, 3), 0.5, colors.black),
    ]))
    elements.append(totals_table)

    if sale.notes:
        elements.append(Spacer(1, 8 * mm))
        elements.append(Paragraph(f"Notes: {escape(sale.notes)}", styles["Normal"]))

    doc.build(elements)
    return buffer.getvalue()
