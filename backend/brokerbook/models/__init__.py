from .auth import User, SessionToken, Otp
from .billing import Subscription, SubscriptionStatus, PaymentStatus
from .books import Book, Client
from .sales import Sale, Product, SalePayment, SaleCommission
from .returns import GoodsReturn, GoodsReturnProduct

__all__ = [
    'User', 'SessionToken', 'Otp',
    'Subscription', 'SubscriptionStatus', 'PaymentStatus',
    'Book', 'Client',
    'Sale', 'Product', 'SalePayment', 'SaleCommission',
    'GoodsReturn', 'GoodsReturnProduct',
]
