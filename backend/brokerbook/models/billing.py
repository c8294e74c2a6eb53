from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .common import created_at_column, updated_at_column


class SubscriptionStatus:
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    UPGRADED = "UPGRADED"
    DOWNGRADED = "DOWNGRADED"


class PaymentStatus:
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Subscription(db.Model):
    """
    One row per plan purchase or activation.

    At most one row per user is ACTIVE under normal operation. The services
    mark the previous row UPGRADED/DOWNGRADED before activating a new one;
    there is no database constraint for it.
    """
    __tablename__ = "subscriptions"
    __table_args__ = (
        db.Index("ix_subscriptions_user_status", "user_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    plan_name = db.Column(db.String(32), nullable=False)
    plan_price = db.Column(db.Float, nullable=False, default=0.0)
    duration = db.Column(db.Integer, nullable=False, default=1)  # months; 0 = forever
    order_id = db.Column(db.String(64), nullable=False, unique=True)

    status = db.Column(db.String(16), nullable=False, default=SubscriptionStatus.PENDING, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default=PaymentStatus.PENDING)

    start_date = db.Column(db.DateTime(timezone=True), nullable=True)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = created_at_column()
    updated_at = updated_at_column()

    user = db.relationship(
        "User",
        backref=db.backref("subscriptions", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "plan_name": self.plan_name,
            "plan_price": self.plan_price,
            "duration": self.duration,
            "order_id": self.order_id,
            "status": self.status,
            "payment_status": self.payment_status,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
