"""
Dashboard and per-resource stats.

Verifies:
- Totals for sales, payments and commission, with amounts due floored at 0
- 12-month history (sales by invoice date, payments by received date)
- Due-soon and recently-overdue invoice lists
- Book, client and sale usage against the plan, and the plan feature flags
"""

import calendar
from datetime import datetime, timedelta

from brokerbook.models import Book, SaleCommission, SalePayment
from brokerbook.services import stats_service
from brokerbook.time_utils import add_months, utcnow
from conftest import activate_plan, add_clients, add_sales


def _pay(db_session, sale, amount, commission=None):
    payment = SalePayment(sale_id=sale.id, amount=amount, payment_method="BANK_TRANSFER")
    db_session.add(payment)
    db_session.commit()
    if commission is not None:
        db_session.add(SaleCommission(sale_payment_id=payment.id, amount=commission, payment_method="CASH"))
        db_session.commit()
    return payment


def _second_book(db_session, user):
    book = Book(user_id=user.id, name="FY 2027-28", start_date=datetime(2027, 4, 1), end_date=datetime(2028, 3, 31))
    db_session.add(book)
    db_session.commit()
    return book


class TestDashboardTotals:
    def test_totals_and_dues(self, db_session, user, sale):
        sale.invoice_net_amount = 10000.0
        sale.commission_rate = 2.0
        db_session.commit()
        _pay(db_session, sale, 4000.0, commission=50.0)

        stats = stats_service.dashboard_stats(user.id)["stats"]
        assert stats == {
            "total_clients": 2,
            "total_sales": 10000.0,
            "total_payments": 4000.0,
            "total_commission": 50.0,
            "total_amount_due": 6000.0,
            "total_commission_due": 150.0,
        }

    def test_dues_never_negative(self, db_session, user, sale):
        sale.invoice_net_amount = 100.0
        db_session.commit()
        _pay(db_session, sale, 150.0, commission=10.0)

        stats = stats_service.dashboard_stats(user.id)["stats"]
        assert stats["total_amount_due"] == 0.0
        assert stats["total_commission_due"] == 0.0

    def test_empty_user(self, db_session, user):
        data = stats_service.dashboard_stats(user.id)
        assert data["stats"]["total_sales"] == 0.0
        assert len(data["monthly_data"]) == 12
        assert data["latest_due_invoices"] == []


class TestMonthlyData:
    def test_current_month_is_last(self, db_session, user, sale):
        sale.invoice_net_amount = 2500.0
        db_session.commit()
        _pay(db_session, sale, 1000.0)

        months = stats_service.dashboard_stats(user.id)["monthly_data"]
        now = utcnow()
        assert months[-1]["month"] == calendar.month_abbr[now.month]
        assert months[-1]["year"] == now.year
        assert months[-1]["sales"] == 2500.0
        assert months[-1]["payments"] == 1000.0

    def test_older_than_twelve_months_excluded(self, db_session, user, book, seller, buyer, sale):
        sale.invoice_net_amount = 100.0
        db_session.commit()
        add_sales(book, seller, buyer, 1, invoice_date=add_months(utcnow(), -13), invoice_net_amount=900.0)

        data = stats_service.dashboard_stats(user.id)
        assert data["stats"]["total_sales"] == 1000.0
        assert sum(month["sales"] for month in data["monthly_data"]) == 100.0


class TestInvoiceLists:
    def test_due_soon_ordered_by_due_date(self, db_session, user, book, seller, buyer):
        now = utcnow()
        later, sooner = add_sales(book, seller, buyer, 2, invoice_date=now)
        later.invoice_due_days = 20
        sooner.invoice_due_days = 3
        db_session.commit()

        due = stats_service.dashboard_stats(user.id, now=now)["latest_due_invoices"]
        assert [entry["id"] for entry in due] == [sooner.id, later.id]
        assert due[0]["buyer"] == {"id": buyer.id, "name": "Ganesh Traders"}

    def test_not_due_within_thirty_days_excluded(self, db_session, user, sale):
        assert stats_service.dashboard_stats(user.id)["latest_due_invoices"] == []

    def test_recently_overdue(self, db_session, user, book, seller, buyer):
        now = utcnow()
        recent, old, paid = add_sales(book, seller, buyer, 3, invoice_date=now - timedelta(days=50))
        old.invoice_date = now - timedelta(days=80)
        paid.status = "PAID"
        db_session.commit()

        data = stats_service.dashboard_stats(user.id, now=now)
        assert [entry["id"] for entry in data["latest_overdue_invoices"]] == [recent.id]
        assert paid.id not in [entry["id"] for entry in data["latest_due_invoices"]]


class TestBookDashboard:
    def test_scoped_to_book(self, client, db_session, user, headers, book, seller, buyer, sale):
        sale.invoice_net_amount = 300.0
        db_session.commit()
        other_book = _second_book(db_session, user)
        add_sales(other_book, seller, buyer, 1, invoice_net_amount=700.0)

        resp = client.get(f"/api/v1/users/{user.id}/books/{book.id}/dashboard", headers=headers)
        assert resp.status_code == 200
        assert resp.json["stats"]["total_sales"] == 300.0

        resp = client.get(f"/api/v1/users/{user.id}/dashboard", headers=headers)
        assert resp.json["stats"]["total_sales"] == 1000.0

    def test_foreign_book_not_found(self, client, db_session, book, other_user):
        from conftest import bearer_headers
        resp = client.get(
            f"/api/v1/users/{other_user.id}/books/{book.id}/dashboard",
            headers=bearer_headers(other_user),
        )
        assert resp.status_code == 404


class TestResourceStats:
    def test_client_stats(self, client, db_session, user, headers):
        add_clients(user, 3)
        resp = client.get(f"/api/v1/users/{user.id}/clients/stats", headers=headers)
        assert resp.status_code == 200
        assert resp.json == {
            "current_count": 3,
            "limit": 5,
            "is_unlimited": False,
            "can_add_more": True,
            "remaining_slots": 2,
            "plan_name": "Basic",
        }

    def test_book_stats_at_limit(self, client, db_session, user, headers, book):
        resp = client.get(f"/api/v1/users/{user.id}/books/stats", headers=headers)
        assert resp.status_code == 200
        assert resp.json["current_count"] == 1
        assert resp.json["can_add_more"] is False
        assert resp.json["remaining_slots"] == 0

    def test_book_stats_unlimited(self, db_session, user, book):
        activate_plan(user, "Professional")
        stats = stats_service.book_stats(user.id)
        assert stats["is_unlimited"] is True
        assert stats["limit"] is None
        assert stats["remaining_slots"] is None

    def test_sale_stats_per_book(self, client, db_session, user, headers, book, seller, buyer):
        other_book = _second_book(db_session, user)
        add_sales(book, seller, buyer, 3)
        add_sales(other_book, seller, buyer, 2)

        resp = client.get(f"/api/v1/users/{user.id}/sales/stats?book_id={book.id}", headers=headers)
        assert resp.status_code == 200
        data = resp.json
        assert data["current_count"] == 3
        assert data["total_count"] == 5
        assert data["month_count"] == 5
        assert data["limit"] == 20
        assert data["remaining_slots"] == 15
        assert data["is_book_specific"] is True

    def test_sale_stats_ignore_last_month_for_allowance(self, db_session, user, book, seller, buyer):
        add_sales(book, seller, buyer, 4, invoice_date=add_months(utcnow(), -1))
        stats = stats_service.sale_stats(user.id)
        assert stats["current_count"] == 4
        assert stats["month_count"] == 0
        assert stats["remaining_slots"] == 20


class TestUserPlanStats:
    def test_basic_cannot_send_reminders(self, client, db_session, user, headers):
        resp = client.get(f"/api/v1/users/{user.id}/stats", headers=headers)
        assert resp.status_code == 200
        assert resp.json["plan_name"] == "Basic"
        assert resp.json["can_send_reminders"] is False

    def test_professional_flags(self, db_session, user):
        activate_plan(user, "Professional")
        stats = stats_service.user_plan_stats(user.id)
        assert stats["can_send_reminders"] is True
        assert stats["features"]["bulk_email"] is True
        assert stats["features"]["api_access"] is False
