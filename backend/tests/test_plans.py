"""
Plan catalog, limit checks and feature gates.

Verifies:
- Catalog is total over plan names and immutable
- Basic client limit boundary (4 ok, 5 rejected) and unlimited paid plans
- Feature gate for payment reminders
- Limit checks on the HTTP create endpoints (403 with details)
- Monthly invoice limit: calendar-month window, undated sales, downgrade text
"""

import dataclasses
from datetime import timedelta

import pytest

from brokerbook.models import Book, Sale
from brokerbook.services.limit_service import PlanLimitError, check_feature, check_limit, usage_summary
from brokerbook.services.plans import (
    DEFAULT_PLAN_CATALOG,
    Feature,
    PlanCatalog,
    PlanLimits,
    PlanName,
    ResourceType,
    UNLIMITED,
)
from brokerbook.services.subscription_service import enforce_downgrade_limits
from brokerbook.services.usage_service import count_invoices_this_month
from brokerbook.time_utils import month_bounds, utcnow
from conftest import activate_plan, add_books, add_clients, add_sales


class TestPlanCatalog:
    def test_levels_order_tiers(self):
        assert PlanName.BASIC.level < PlanName.PROFESSIONAL.level < PlanName.ENTERPRISE.level

    def test_parse_rejects_unknown_plan(self):
        with pytest.raises(ValueError, match="Invalid plan name"):
            PlanName.parse("Platinum")

    def test_default_prices(self):
        assert DEFAULT_PLAN_CATALOG.price_for(PlanName.BASIC) == 0.0
        assert DEFAULT_PLAN_CATALOG.price_for(PlanName.PROFESSIONAL) == 999.0
        assert DEFAULT_PLAN_CATALOG.price_for(PlanName.ENTERPRISE) == 2999.0

    def test_basic_limits(self):
        limits = DEFAULT_PLAN_CATALOG.limits_for(PlanName.BASIC)
        assert limits.limit_for(ResourceType.CLIENTS) == 5
        assert limits.limit_for(ResourceType.BOOKS) == 1
        assert limits.limit_for(ResourceType.INVOICES) == 20
        assert not limits.allows(Feature.PAYMENT_REMINDERS)

    def test_paid_plans_are_unlimited(self):
        for plan in (PlanName.PROFESSIONAL, PlanName.ENTERPRISE):
            limits = DEFAULT_PLAN_CATALOG.limits_for(plan)
            assert limits.limit_for(ResourceType.CLIENTS) == UNLIMITED
            assert limits.is_unlimited(ResourceType.INVOICES)

    def test_catalog_must_cover_every_plan(self):
        with pytest.raises(ValueError):
            PlanCatalog({PlanName.BASIC: DEFAULT_PLAN_CATALOG.limits_for(PlanName.BASIC)})

    def test_limits_are_frozen(self):
        limits = DEFAULT_PLAN_CATALOG.limits_for(PlanName.BASIC)
        with pytest.raises(dataclasses.FrozenInstanceError):
            limits.clients = 100

    def test_injected_catalog_is_used(self, db_session, user):
        tight = PlanCatalog({
            PlanName.BASIC: PlanLimits(clients=1, books=1, invoices_per_month=1),
            PlanName.PROFESSIONAL: DEFAULT_PLAN_CATALOG.limits_for(PlanName.PROFESSIONAL),
            PlanName.ENTERPRISE: DEFAULT_PLAN_CATALOG.limits_for(PlanName.ENTERPRISE),
        })
        add_clients(user, 1)
        with pytest.raises(PlanLimitError):
            check_limit(user.id, ResourceType.CLIENTS, catalog=tight)


class TestClientLimitBoundary:
    """Basic allows 5 clients; paid plans never block."""

    def test_fifth_client_allowed(self, db_session, user):
        add_clients(user, 4)
        check_limit(user.id, ResourceType.CLIENTS)

    def test_sixth_client_rejected(self, db_session, user):
        add_clients(user, 5)
        with pytest.raises(PlanLimitError) as exc:
            check_limit(user.id, ResourceType.CLIENTS)
        assert str(exc.value) == (
            "You have reached the maximum number of clients (5) for your Basic plan. "
            "Please upgrade to add more clients."
        )
        assert exc.value.details["current_count"] == 5

    @pytest.mark.parametrize("plan", ["Professional", "Enterprise"])
    def test_paid_plan_never_blocks(self, db_session, user, plan):
        activate_plan(user, plan)
        add_clients(user, 50)
        check_limit(user.id, ResourceType.CLIENTS)

    def test_http_create_rejected_at_limit(self, client, db_session, user, headers):
        add_clients(user, 5)
        resp = client.post(
            f"/api/v1/users/{user.id}/clients",
            json={"name": "One Too Many"},
            headers=headers,
        )
        assert resp.status_code == 403
        assert resp.json["details"]["limit"] == 5

    def test_http_book_limit(self, client, db_session, user, headers):
        add_books(user, 1)
        resp = client.post(
            f"/api/v1/users/{user.id}/books",
            json={"name": "Second", "start_date": "2030-04-01", "end_date": "2031-03-31"},
            headers=headers,
        )
        assert resp.status_code == 403
        assert "maximum number of books (1)" in resp.json["error"]


class TestInvoiceLimitBoundary:
    """Basic allows 20 invoices per calendar month, counted across the user's books."""

    def _last_month(self):
        start, _ = month_bounds(utcnow())
        return start - timedelta(days=1)

    def test_last_month_is_not_counted(self, db_session, user, book, seller, buyer):
        add_sales(book, seller, buyer, 19)
        add_sales(book, seller, buyer, 5, invoice_date=self._last_month())
        assert count_invoices_this_month(user.id) == 19
        check_limit(user.id, ResourceType.INVOICES)

    def test_other_users_sales_are_not_counted(self, db_session, user, other_user, book, seller, buyer):
        other_book = Book(user_id=other_user.id, name="Other FY", start_date=book.start_date, end_date=book.end_date)
        db_session.add(other_book)
        db_session.commit()
        add_sales(other_book, seller, buyer, 20)
        assert count_invoices_this_month(user.id) == 0
        assert count_invoices_this_month(other_user.id) == 20

    def test_twenty_first_rejected_over_http(self, client, db_session, user, headers, book, seller, buyer):
        add_sales(book, seller, buyer, 20)
        resp = client.post(
            f"/api/v1/users/{user.id}/books/{book.id}/sales",
            json={"seller_id": seller.id, "buyer_id": buyer.id, "invoice_number": "INV-021"},
            headers=headers,
        )
        assert resp.status_code == 403
        assert resp.json["error"] == (
            "You have reached the maximum number of invoices (20) for this month "
            "on your Basic plan. Please upgrade to create more invoices."
        )
        assert resp.json["details"]["current_count"] == 20

    def test_undated_sales_count_towards_limit(self, client, db_session, user, headers, book, seller, buyer):
        url = f"/api/v1/users/{user.id}/books/{book.id}/sales"
        payload = {"seller_id": seller.id, "buyer_id": buyer.id}
        codes = [client.post(url, json=payload, headers=headers).status_code for _ in range(21)]
        assert codes == [201] * 20 + [403]

    def test_create_without_date_is_dated_now(self, client, db_session, user, headers, book, seller, buyer):
        resp = client.post(
            f"/api/v1/users/{user.id}/books/{book.id}/sales",
            json={"seller_id": seller.id, "buyer_id": buyer.id},
            headers=headers,
        )
        assert resp.status_code == 201
        assert resp.json["sale"]["invoice_date"] is not None

    def test_undated_row_counted_by_created_at(self, db_session, user, book, seller, buyer):
        undated = Sale(book_id=book.id, seller_id=seller.id, buyer_id=buyer.id, invoice_date=None)
        db_session.add(undated)
        db_session.commit()
        assert count_invoices_this_month(user.id) == 1
        assert count_invoices_this_month(user.id, now=utcnow() + timedelta(days=40)) == 0

    def test_downgrade_reports_invoice_overage(self, db_session, user, book, seller, buyer):
        activate_plan(user, "Professional")
        add_sales(book, seller, buyer, 23)
        violations = enforce_downgrade_limits(user.id, "Basic")
        assert "You have created 23 invoices this month but Basic plan allows only 20 per month." in violations


class TestFeatureGate:
    def test_basic_lacks_payment_reminders(self, db_session, user):
        with pytest.raises(PlanLimitError):
            check_feature(user.id, Feature.PAYMENT_REMINDERS)

    @pytest.mark.parametrize("plan", ["Professional", "Enterprise"])
    def test_paid_plans_have_payment_reminders(self, db_session, user, plan):
        activate_plan(user, plan)
        check_feature(user.id, Feature.PAYMENT_REMINDERS)

    def test_only_enterprise_has_api_access(self, db_session, user):
        activate_plan(user, "Professional")
        with pytest.raises(PlanLimitError):
            check_feature(user.id, Feature.API_ACCESS)

    def test_gated_route_returns_403(self, client, db_session, user, headers):
        resp = client.get(f"/api/v1/users/{user.id}/payment-reminders/upcoming", headers=headers)
        assert resp.status_code == 403
        assert resp.json["details"]["feature"] == "payment_reminders"


class TestUsageSummary:
    def test_reports_remaining_slots(self, db_session, user):
        add_clients(user, 3)
        summary = usage_summary(user.id)
        assert summary["plan_name"] == "Basic"
        clients = summary["resources"]["clients"]
        assert clients["current_count"] == 3
        assert clients["remaining_slots"] == 2
        assert clients["can_add_more"] is True

    def test_usage_endpoint(self, client, db_session, user, headers):
        activate_plan(user, "Enterprise")
        resp = client.get(f"/api/v1/users/{user.id}/usage", headers=headers)
        assert resp.status_code == 200
        assert resp.json["resources"]["books"]["is_unlimited"] is True
