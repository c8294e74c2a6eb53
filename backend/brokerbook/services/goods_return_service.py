# Overview: Service-layer operations for goods returns (headers; lines live in line_item_service).

from __future__ import annotations

from ..extensions import db
from ..models import GoodsReturn
from .ownership_service import require_goods_return, require_sale


def list_goods_returns(user_id: str, sale_id: str) -> list[GoodsReturn]:
    sale = require_sale(user_id, sale_id)
    return (
        db.session.query(GoodsReturn)
        .filter_by(sale_id=sale.id)
        .order_by(GoodsReturn.created_at.asc())
        .all()
    )


def create_goods_return(user_id: str, sale_id: str, patch: dict) -> GoodsReturn:
    """New return starts with zero totals; lines add to them."""
    sale = require_sale(user_id, sale_id)
    goods_return = GoodsReturn(sale_id=sale.id, **patch)
    db.session.add(goods_return)
    db.session.commit()
    return goods_return


def update_goods_return(user_id: str, goods_return_id: str, patch: dict, *, sale_id: str | None = None) -> GoodsReturn:
    goods_return = require_goods_return(user_id, goods_return_id, sale_id=sale_id)
    for key, value in patch.items():
        setattr(goods_return, key, value)
    db.session.commit()
    return goods_return


def delete_goods_return(user_id: str, goods_return_id: str, *, sale_id: str | None = None) -> None:
    goods_return = require_goods_return(user_id, goods_return_id, sale_id=sale_id)
    db.session.delete(goods_return)
    db.session.commit()
