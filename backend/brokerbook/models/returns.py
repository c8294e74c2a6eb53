from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..services.amounts import LineAmounts
from .common import uuid_pk, created_at_column, updated_at_column


class GoodsReturn(db.Model):
    """
    Goods sent back against a sale.

    Amount columns are running totals over the return's lines, maintained
    the same way as Sale totals over Products.
    """
    __tablename__ = "goods_returns"

    id = uuid_pk()
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)

    gross_amount = db.Column(db.Float, nullable=False, default=0.0)
    discount_amount = db.Column(db.Float, nullable=False, default=0.0)
    tax_amount = db.Column(db.Float, nullable=False, default=0.0)
    net_amount = db.Column(db.Float, nullable=False, default=0.0)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = created_at_column()
    updated_at = updated_at_column()

    sale = db.relationship(
        "Sale",
        backref=db.backref("goods_returns", lazy=True, cascade="all, delete-orphan"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def totals(self) -> LineAmounts:
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
            "gross_amount": self.gross_amount,
            "discount_amount": self.discount_amount,
            "tax_amount": self.tax_amount,
            "net_amount": self.net_amount,
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class GoodsReturnProduct(db.Model):
    """
    Returned quantity of one sale product.

    Amounts are priced from the product's rate and rates at write time and
    stored, so a later edit or delete reverses exactly what was applied to
    the parent even if the product has been repriced since.
    """
    __tablename__ = "goods_return_products"

    id = uuid_pk()
    goods_return_id = db.Column(db.String(36), db.ForeignKey("goods_returns.id"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)

    gross_amount = db.Column(db.Float, nullable=False, default=0.0)
    discount_amount = db.Column(db.Float, nullable=False, default=0.0)
    tax_amount = db.Column(db.Float, nullable=False, default=0.0)
    net_amount = db.Column(db.Float, nullable=False, default=0.0)

    created_at = created_at_column()
    updated_at = updated_at_column()

    goods_return = db.relationship(
        "GoodsReturn",
        backref=db.backref("lines", lazy=True, cascade="all, delete-orphan"),
    )
    product = db.relationship(
        "Product",
        backref=db.backref("return_lines", lazy=True, passive_deletes="all"),
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
            "goods_return_id": self.goods_return_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "gross_amount": self.gross_amount,
            "discount_amount": self.discount_amount,
            "tax_amount": self.tax_amount,
            "net_amount": self.net_amount,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
