from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..services.amounts import LineAmounts
from .common import uuid_pk, created_at_column, updated_at_column

SALE_STATUSES = ("PENDING", "PARTIALLY_PAID", "PAID", "OVERDUE")
OPEN_SALE_STATUSES = ("PENDING", "PARTIALLY_PAID", "OVERDUE")
PAYMENT_METHODS = ("CASH", "BANK_TRANSFER", "CHEQUE", "ONLINE_PAYMENT")

DEFAULT_INVOICE_DUE_DAYS = 45


class Sale(db.Model):
    """
    Invoice recorded in a book, between a seller and a buyer client.

    The four invoice_*_amount columns are running totals over the sale's
    products. They are only written by line_item_service, never by clients.
    version_id guards those totals against lost updates.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_book_invoice_date", "book_id", "invoice_date"),
        db.Index("ix_sales_invoice_number", "invoice_number"),
    )

    id = uuid_pk()
    book_id = db.Column(db.String(36), db.ForeignKey("books.id"), nullable=False, index=True)
    seller_id = db.Column(db.String(36), db.ForeignKey("clients.id"), nullable=False, index=True)
    buyer_id = db.Column(db.String(36), db.ForeignKey("clients.id"), nullable=False, index=True)

    # Transport / paperwork
    lorry_receipt_number = db.Column(db.String(64), nullable=True)
    lorry_receipt_date = db.Column(db.DateTime(timezone=True), nullable=True)
    case_number = db.Column(db.String(64), nullable=True)
    weight = db.Column(db.Float, nullable=True)
    freight = db.Column(db.Float, nullable=True)
    transport_name = db.Column(db.String(255), nullable=True)
    transport_number = db.Column(db.String(64), nullable=True)
    transport_station = db.Column(db.String(255), nullable=True)
    e_way_bill_number = db.Column(db.String(64), nullable=True)
    e_way_bill_date = db.Column(db.DateTime(timezone=True), nullable=True)
    challan_number = db.Column(db.String(64), nullable=True)
    challan_date = db.Column(db.DateTime(timezone=True), nullable=True)

    invoice_number = db.Column(db.String(64), nullable=True)
    invoice_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Aggregates over products
    invoice_gross_amount = db.Column(db.Float, nullable=False, default=0.0)
    invoice_discount_amount = db.Column(db.Float, nullable=False, default=0.0)
    invoice_tax_amount = db.Column(db.Float, nullable=False, default=0.0)
    invoice_net_amount = db.Column(db.Float, nullable=False, default=0.0)

    commission_rate = db.Column(db.Float, nullable=True)
    invoice_due_days = db.Column(db.Integer, nullable=False, default=DEFAULT_INVOICE_DUE_DAYS)
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = created_at_column()
    updated_at = updated_at_column()

    book = db.relationship(
        "Book",
        backref=db.backref("sales", lazy=True, cascade="all, delete-orphan"),
    )
    seller = db.relationship("Client", foreign_keys=[seller_id])
    buyer = db.relationship("Client", foreign_keys=[buyer_id])
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def totals(self) -> LineAmounts:
        return LineAmounts(
            gross=self.invoice_gross_amount or 0.0,
            discount=self.invoice_discount_amount or 0.0,
            tax=self.invoice_tax_amount or 0.0,
            net=self.invoice_net_amount or 0.0,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "seller_id": self.seller_id,
            "buyer_id": self.buyer_id,
            "lorry_receipt_number": self.lorry_receipt_number,
            "lorry_receipt_date": to_utc_z(self.lorry_receipt_date),
            "case_number": self.case_number,
            "weight": self.weight,
            "freight": self.freight,
            "transport_name": self.transport_name,
            "transport_number": self.transport_number,
            "transport_station": self.transport_station,
            "e_way_bill_number": self.e_way_bill_number,
            "e_way_bill_date": to_utc_z(self.e_way_bill_date),
            "challan_number": self.challan_number,
            "challan_date": to_utc_z(self.challan_date),
            "invoice_number": self.invoice_number,
            "invoice_date": to_utc_z(self.invoice_date),
            "invoice_gross_amount": self.invoice_gross_amount,
            "invoice_discount_amount": self.invoice_discount_amount,
            "invoice_tax_amount": self.invoice_tax_amount,
            "invoice_net_amount": self.invoice_net_amount,
            "commission_rate": self.commission_rate,
            "invoice_due_days": self.invoice_due_days,
            "status": self.status,
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """Priced line item on a sale. Amount columns are derived from rate/quantity/rates."""
    __tablename__ = "products"

    id = uuid_pk()
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Float, nullable=False, default=0.0)
    unit = db.Column(db.String(32), nullable=False, default="Nos")
    rate = db.Column(db.Float, nullable=False, default=0.0)
    gst_rate = db.Column(db.Float, nullable=False, default=0.0)
    discount_rate = db.Column(db.Float, nullable=False, default=0.0)

    gross_amount = db.Column(db.Float, nullable=False, default=0.0)
    discount_amount = db.Column(db.Float, nullable=False, default=0.0)
    tax_amount = db.Column(db.Float, nullable=False, default=0.0)
    net_amount = db.Column(db.Float, nullable=False, default=0.0)

    notes = db.Column(db.Text, nullable=True)
    created_at = created_at_column()
    updated_at = updated_at_column()

    sale = db.relationship(
        "Sale",
        backref=db.backref("products", lazy=True, cascade="all, delete-orphan"),
    )

    @property
    def amounts(self) -> LineAmounts:
        return LineAmounts(
            gross=self.gross_amount or 0.0,
            discount=self.discount_amount or 0.0,
            tax=self.tax_amount or 0.0,
            net=self.net_amount or 0.0,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "rate": self.rate,
            "gst_rate": self.gst_rate,
            "discount_rate": self.discount_rate,
            "gross_amount": self.gross_amount,
            "discount_amount": self.discount_amount,
            "tax_amount": self.tax_amount,
            "net_amount": self.net_amount,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SalePayment(db.Model):
    """Money received against a sale."""
    __tablename__ = "sale_payments"

    id = uuid_pk()
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    reference_number = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = created_at_column()
    updated_at = updated_at_column()

    sale = db.relationship(
        "Sale",
        backref=db.backref("payments", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "amount": self.amount,
            "payment_method": self.payment_method,
            "reference_number": self.reference_number,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SaleCommission(db.Model):
    """Brokerage commission collected against a sale payment."""
    __tablename__ = "sale_commissions"

    id = uuid_pk()
    sale_payment_id = db.Column(db.String(36), db.ForeignKey("sale_payments.id"), nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    reference_number = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = created_at_column()
    updated_at = updated_at_column()

    sale_payment = db.relationship(
        "SalePayment",
        backref=db.backref("commissions", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_payment_id": self.sale_payment_id,
            "amount": self.amount,
            "payment_method": self.payment_method,
            "reference_number": self.reference_number,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
