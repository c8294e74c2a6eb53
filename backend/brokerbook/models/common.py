from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import utcnow


def new_uuid() -> str:
    return str(uuid.uuid4())


def uuid_pk():
    return db.Column(db.String(36), primary_key=True, default=new_uuid)


def created_at_column():
    # Python-side default keeps sub-second ordering (SQLite CURRENT_TIMESTAMP is per-second)
    return db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)


def updated_at_column():
    return db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
