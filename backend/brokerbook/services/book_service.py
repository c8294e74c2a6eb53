# Overview: Service-layer operations for books; creation, listing, updates and removal.

from __future__ import annotations

from ..extensions import db
from ..models import Book
from ..validation import ConflictError, ValidationError
from .ownership_service import require_book


def _ensure_unique(user_id: str, name, start_date, end_date, exclude_id: str | None = None) -> None:
    query = db.session.query(Book).filter_by(
        user_id=user_id, name=name, start_date=start_date, end_date=end_date,
    )
    if exclude_id is not None:
        query = query.filter(Book.id != exclude_id)
    if query.first():
        raise ConflictError("Book with same details already exists")


def _check_period(start_date, end_date) -> None:
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date must be on or after start_date")


def list_books(user_id: str) -> list[Book]:
    return (
        db.session.query(Book)
        .filter_by(user_id=user_id)
        .order_by(Book.start_date.desc(), Book.created_at.desc())
        .all()
    )


def create_book(user_id: str, patch: dict) -> Book:
    _check_period(patch.get("start_date"), patch.get("end_date"))
    _ensure_unique(user_id, patch.get("name"), patch.get("start_date"), patch.get("end_date"))

    book = Book(user_id=user_id, **patch)
    db.session.add(book)
    db.session.commit()
    return book


def update_book(user_id: str, book_id: str, patch: dict) -> Book:
    book = require_book(user_id, book_id)
    name = patch.get("name", book.name)
    start_date = patch.get("start_date", book.start_date)
    end_date = patch.get("end_date", book.end_date)

    _check_period(start_date, end_date)
    if {"name", "start_date", "end_date"} & patch.keys():
        _ensure_unique(user_id, name, start_date, end_date, exclude_id=book.id)

    for key, value in patch.items():
        setattr(book, key, value)
    db.session.commit()
    return book


def delete_book(user_id: str, book_id: str) -> None:
    """Deletes the book together with its sales and everything under them."""
    book = require_book(user_id, book_id)
    db.session.delete(book)
    db.session.commit()
