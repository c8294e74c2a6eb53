from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .common import uuid_pk, created_at_column, updated_at_column

BOOK_STATUSES = ("OPEN", "CLOSED")


class Book(db.Model):
    """Accounting period that groups a user's sales."""
    __tablename__ = "books"
    __table_args__ = (
        db.Index("ix_books_user_name", "user_id", "name"),
    )

    id = uuid_pk()
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=False)
    opening_balance = db.Column(db.Float, nullable=True)
    closing_balance = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="OPEN")

    created_at = created_at_column()
    updated_at = updated_at_column()

    user = db.relationship(
        "User",
        backref=db.backref("books", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "opening_balance": self.opening_balance,
            "closing_balance": self.closing_balance,
            "notes": self.notes,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Client(db.Model):
    """
    Trading party in the user's client pool.

    The same row can be the seller on one sale and the buyer on another.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_user_phone_pan", "user_id", "phone", "pan"),
    )

    id = uuid_pk()
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    pan = db.Column(db.String(16), nullable=True)
    gstin = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = created_at_column()
    updated_at = updated_at_column()

    user = db.relationship(
        "User",
        backref=db.backref("clients", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "pan": self.pan,
            "gstin": self.gstin,
            "address": self.address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
