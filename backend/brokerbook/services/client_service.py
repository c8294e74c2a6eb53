# Overview: Service-layer operations for clients (the user's buyers and sellers).

from __future__ import annotations

from ..extensions import db
from ..models import Client, Sale
from ..validation import ConflictError
from .ownership_service import require_client, sales_query


def _ensure_unique(user_id: str, phone, pan, exclude_id: str | None = None) -> None:
    query = db.session.query(Client).filter_by(user_id=user_id, phone=phone, pan=pan)
    if exclude_id is not None:
        query = query.filter(Client.id != exclude_id)
    if query.first():
        raise ConflictError("Client with same details already exists")


def list_clients(user_id: str, search: str | None = None) -> list[Client]:
    query = db.session.query(Client).filter_by(user_id=user_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Client.name.ilike(pattern),
            Client.phone.ilike(pattern),
            Client.pan.ilike(pattern),
        ))
    return query.order_by(Client.name.asc()).all()


def create_client(user_id: str, patch: dict) -> Client:
    _ensure_unique(user_id, patch.get("phone"), patch.get("pan"))
    client = Client(user_id=user_id, **patch)
    db.session.add(client)
    db.session.commit()
    return client


def update_client(user_id: str, client_id: str, patch: dict) -> Client:
    client = require_client(user_id, client_id)
    if "phone" in patch or "pan" in patch:
        _ensure_unique(
            user_id,
            patch.get("phone", client.phone),
            patch.get("pan", client.pan),
            exclude_id=client.id,
        )
    for key, value in patch.items():
        setattr(client, key, value)
    db.session.commit()
    return client


def client_sales(user_id: str, client_id: str) -> list[Sale]:
    """Sales where the client is the buyer or the seller."""
    client = require_client(user_id, client_id)
    return (
        sales_query(user_id)
        .filter(db.or_(Sale.seller_id == client.id, Sale.buyer_id == client.id))
        .order_by(Sale.invoice_date.desc())
        .all()
    )


def delete_client(user_id: str, client_id: str) -> None:
    client = require_client(user_id, client_id)
    in_use = db.session.query(Sale).filter(
        db.or_(Sale.seller_id == client.id, Sale.buyer_id == client.id)
    ).first()
    if in_use:
        raise ConflictError("Client is referenced by existing sales")
    db.session.delete(client)
    db.session.commit()
