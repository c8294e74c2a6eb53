"""
Pytest fixtures for BrokerBook backend tests.

Provides test database setup, user/book/client/sale fixtures, recording
notification channels and bearer-token helpers.
"""

from datetime import datetime

import pytest
from brokerbook import create_app
from brokerbook.extensions import db
from brokerbook.models import Book, Client, Sale, Subscription
from brokerbook.models.billing import SubscriptionStatus, PaymentStatus
from brokerbook.services.auth_service import create_user
from brokerbook.services.session_service import create_session
from brokerbook.time_utils import utcnow


PASSWORD = "Password123!"


class RecordingEmailChannel:
    """Stands in for SMTP; keeps every message instead of sending it."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    @property
    def enabled(self):
        return True

    def send(self, to, subject, body, attachments=None):
        if to in self.fail_for:
            from brokerbook.services.notification_service import NotificationError
            raise NotificationError(f"Email to {to} failed")
        self.sent.append({"to": to, "subject": subject, "body": body, "attachments": list(attachments or ())})
        return True


class RecordingWhatsAppChannel:
    def __init__(self):
        self.sent = []

    @property
    def enabled(self):
        return True

    def send(self, to, message):
        self.sent.append({"to": to, "message": message})
        return True


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PAYMENT_WEBHOOK_SECRET': 'test-webhook-secret',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def mailbox(app):
    """Recording email channel installed on the app for one test."""
    channel = RecordingEmailChannel()
    original = app.extensions["email_channel"]
    app.extensions["email_channel"] = channel
    yield channel
    app.extensions["email_channel"] = original


@pytest.fixture(scope='function')
def whatsapp(app):
    channel = RecordingWhatsAppChannel()
    original = app.extensions["whatsapp_channel"]
    app.extensions["whatsapp_channel"] = channel
    yield channel
    app.extensions["whatsapp_channel"] = original


@pytest.fixture(scope='function')
def user(db_session):
    """Verified broker account on the Basic plan (no subscription row)."""
    return create_user("Ravi Broker", "ravi@example.com", PASSWORD, phone="9876543210")


@pytest.fixture(scope='function')
def other_user(db_session):
    return create_user("Other Broker", "other@example.com", PASSWORD, phone="9123456780")


@pytest.fixture(scope='function')
def headers(user):
    return bearer_headers(user)


@pytest.fixture(scope='function')
def book(db_session, user):
    book = Book(
        user_id=user.id,
        name="FY 2026-27",
        start_date=datetime(2026, 4, 1),
        end_date=datetime(2027, 3, 31),
    )
    db_session.add(book)
    db_session.commit()
    return book


@pytest.fixture(scope='function')
def seller(db_session, user):
    client = Client(
        user_id=user.id,
        name="Shree Textiles",
        email="accounts@shreetextiles.example",
        phone="9000000001",
        pan="ABCDE1234F",
    )
    db_session.add(client)
    db_session.commit()
    return client


@pytest.fixture(scope='function')
def buyer(db_session, user):
    client = Client(
        user_id=user.id,
        name="Ganesh Traders",
        email="ganesh@example.com",
        phone="9000000002",
        pan="PQRSX6789K",
    )
    db_session.add(client)
    db_session.commit()
    return client


@pytest.fixture(scope='function')
def sale(db_session, book, seller, buyer):
    sale = Sale(
        book_id=book.id,
        seller_id=seller.id,
        buyer_id=buyer.id,
        invoice_number="INV-001",
        invoice_date=utcnow(),
    )
    db_session.add(sale)
    db_session.commit()
    return sale


def bearer_headers(user) -> dict:
    """Helper to create Authorization headers for a fresh session."""
    _, token = create_session(user)
    return {'Authorization': f'Bearer {token}'}


def activate_plan(user, plan_name: str, *, order_id: str | None = None) -> Subscription:
    """Insert an ACTIVE subscription directly, skipping the purchase flow."""
    subscription = Subscription(
        user_id=user.id,
        plan_name=plan_name,
        plan_price=0.0,
        duration=1,
        order_id=order_id or f"TEST_{plan_name}_{user.id[:8]}",
        status=SubscriptionStatus.ACTIVE,
        payment_status=PaymentStatus.COMPLETED,
        start_date=utcnow(),
    )
    db.session.add(subscription)
    db.session.commit()
    return subscription


def add_clients(user, count: int) -> None:
    for i in range(count):
        db.session.add(Client(user_id=user.id, name=f"Client {i}", phone=f"80000000{i:02d}"))
    db.session.commit()


def add_books(user, count: int) -> None:
    for i in range(count):
        db.session.add(Book(
            user_id=user.id,
            name=f"Book {i}",
            start_date=datetime(2020 + i, 4, 1),
            end_date=datetime(2021 + i, 3, 31),
        ))
    db.session.commit()


def add_sales(book, seller, buyer, count: int, *, invoice_date=None, **fields) -> list[Sale]:
    """Insert `count` sales dated `invoice_date` (default now) straight into the book."""
    sales = [
        Sale(
            book_id=book.id,
            seller_id=seller.id,
            buyer_id=buyer.id,
            invoice_date=invoice_date or utcnow(),
            **fields,
        )
        for _ in range(count)
    ]
    db.session.add_all(sales)
    db.session.commit()
    return sales
