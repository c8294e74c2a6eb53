"""
Ownership scoping helpers.

WHY: Every record hangs off a user, directly (books, clients) or through
its ancestry (sale -> book -> user). Lookups always join back to the owner,
so a foreign id is indistinguishable from a missing one: both raise
NotFoundError and the caller answers 404.

USAGE:
    book = require_book(user_id, book_id)
    sale = require_sale(user_id, sale_id, book_id=book_id, lock=True)
"""

from __future__ import annotations

from ..extensions import db
from ..models import (
    Book, Client, Sale, Product, GoodsReturn, GoodsReturnProduct,
    SalePayment, SaleCommission,
)
from ..validation import NotFoundError
from .concurrency import lock_for_update


def require_book(user_id: str, book_id: str) -> Book:
    book = db.session.query(Book).filter_by(id=book_id, user_id=user_id).first()
    if not book:
        raise NotFoundError("Book not found")
    return book


def require_client(user_id: str, client_id: str) -> Client:
    client = db.session.query(Client).filter_by(id=client_id, user_id=user_id).first()
    if not client:
        raise NotFoundError("Client not found")
    return client


def sales_query(user_id: str):
    """Sales visible to the user, via the books they own."""
    return db.session.query(Sale).join(Book, Sale.book_id == Book.id).filter(Book.user_id == user_id)


def require_sale(user_id: str, sale_id: str, *, book_id: str | None = None, lock: bool = False) -> Sale:
    query = sales_query(user_id).filter(Sale.id == sale_id)
    if book_id is not None:
        query = query.filter(Sale.book_id == book_id)
    if lock:
        query = lock_for_update(query)
    sale = query.first()
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def require_product(user_id: str, product_id: str, *, sale_id: str | None = None) -> Product:
    query = (
        db.session.query(Product)
        .join(Sale, Product.sale_id == Sale.id)
        .join(Book, Sale.book_id == Book.id)
        .filter(Book.user_id == user_id, Product.id == product_id)
    )
    if sale_id is not None:
        query = query.filter(Product.sale_id == sale_id)
    product = query.first()
    if not product:
        raise NotFoundError("Product not found")
    return product


def require_goods_return(
    user_id: str,
    goods_return_id: str,
    *,
    sale_id: str | None = None,
    lock: bool = False,
) -> GoodsReturn:
    query = (
        db.session.query(GoodsReturn)
        .join(Sale, GoodsReturn.sale_id == Sale.id)
        .join(Book, Sale.book_id == Book.id)
        .filter(Book.user_id == user_id, GoodsReturn.id == goods_return_id)
    )
    if sale_id is not None:
        query = query.filter(GoodsReturn.sale_id == sale_id)
    if lock:
        query = lock_for_update(query)
    goods_return = query.first()
    if not goods_return:
        raise NotFoundError("Goods return not found")
    return goods_return


def require_return_product(
    user_id: str,
    line_id: str,
    *,
    goods_return_id: str | None = None,
) -> GoodsReturnProduct:
    query = (
        db.session.query(GoodsReturnProduct)
        .join(GoodsReturn, GoodsReturnProduct.goods_return_id == GoodsReturn.id)
        .join(Sale, GoodsReturn.sale_id == Sale.id)
        .join(Book, Sale.book_id == Book.id)
        .filter(Book.user_id == user_id, GoodsReturnProduct.id == line_id)
    )
    if goods_return_id is not None:
        query = query.filter(GoodsReturnProduct.goods_return_id == goods_return_id)
    line = query.first()
    if not line:
        raise NotFoundError("Goods return product not found")
    return line


def require_sale_payment(user_id: str, payment_id: str, *, sale_id: str | None = None) -> SalePayment:
    query = (
        db.session.query(SalePayment)
        .join(Sale, SalePayment.sale_id == Sale.id)
        .join(Book, Sale.book_id == Book.id)
        .filter(Book.user_id == user_id, SalePayment.id == payment_id)
    )
    if sale_id is not None:
        query = query.filter(SalePayment.sale_id == sale_id)
    payment = query.first()
    if not payment:
        raise NotFoundError("Sale payment not found")
    return payment


def require_sale_commission(
    user_id: str,
    commission_id: str,
    *,
    sale_payment_id: str | None = None,
) -> SaleCommission:
    query = (
        db.session.query(SaleCommission)
        .join(SalePayment, SaleCommission.sale_payment_id == SalePayment.id)
        .join(Sale, SalePayment.sale_id == Sale.id)
        .join(Book, Sale.book_id == Book.id)
        .filter(Book.user_id == user_id, SaleCommission.id == commission_id)
    )
    if sale_payment_id is not None:
        query = query.filter(SaleCommission.sale_payment_id == sale_payment_id)
    commission = query.first()
    if not commission:
        raise NotFoundError("Sale commission not found")
    return commission
