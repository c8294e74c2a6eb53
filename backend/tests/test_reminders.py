"""
Commission payment reminders.

Verifies:
- Due-day schedule (10/5/1/0 days before, and every day once overdue)
- Plan gating (payment_reminders, whatsapp_automation)
- Per-channel, per-recipient results; one failing email does not stop the rest
"""

from datetime import timedelta

import pytest

from brokerbook.services import reminder_service
from brokerbook.time_utils import utcnow
from conftest import activate_plan


def _due_in(sale, days, db_session):
    """Move invoice_date so the sale falls due `days` from now (negative = overdue)."""
    sale.invoice_date = utcnow() + timedelta(days=days) - timedelta(days=sale.invoice_due_days)
    db_session.commit()


class TestSchedule:
    @pytest.mark.parametrize("days,expected", [
        (10, True), (9, False), (5, True), (2, False), (1, True), (0, True), (-1, True), (-30, True), (11, False),
    ])
    def test_needs_reminder(self, days, expected):
        assert reminder_service.needs_reminder(days) is expected

    def test_days_until_rounds_up(self):
        now = utcnow()
        assert reminder_service.days_until(now + timedelta(hours=3), now) == 1
        assert reminder_service.days_until(now - timedelta(hours=3), now) == 0

    def test_candidate_uses_default_commission_rate(self, db_session, sale):
        sale.invoice_net_amount = 10000.0
        candidate = reminder_service.build_candidate(sale, utcnow())
        assert candidate.commission_rate == 2.0
        assert candidate.commission_amount == 200.0
        assert candidate.broker.id == sale.book.user_id

    def test_explicit_zero_commission_rate_is_kept(self, db_session, sale):
        sale.invoice_net_amount = 10000.0
        sale.commission_rate = 0.0
        candidate = reminder_service.build_candidate(sale, utcnow())
        assert candidate.commission_rate == 0.0
        assert candidate.commission_amount == 0.0

    def test_zero_due_days_means_due_on_invoice_date(self, db_session, sale):
        now = utcnow()
        sale.invoice_date = now
        sale.invoice_due_days = 0
        candidate = reminder_service.build_candidate(sale, now)
        assert candidate.due_date == now
        assert candidate.days_until_due == 0


class TestSendReminders:
    def test_basic_plan_is_skipped(self, db_session, user, sale, mailbox, whatsapp):
        _due_in(sale, 5, db_session)
        summary = reminder_service.send_payment_reminders(user.id)
        assert summary["skipped"] == 1
        assert summary["total"] == 0
        assert mailbox.sent == []

    def test_professional_sends_email_and_whatsapp(self, db_session, user, sale, seller, mailbox, whatsapp):
        activate_plan(user, "Professional")
        _due_in(sale, 5, db_session)

        summary = reminder_service.send_payment_reminders(user.id)

        assert summary["total"] == 1
        assert summary["successful"] == 1
        result = summary["results"][0]
        assert result["email"] == {"seller": True, "broker": True}
        assert result["whatsapp"] is True
        assert {m["to"] for m in mailbox.sent} == {seller.email, user.email}
        assert "Due in 5 day(s)" in mailbox.sent[0]["body"]

    def test_not_due_today(self, db_session, user, sale, mailbox, whatsapp):
        activate_plan(user, "Professional")
        _due_in(sale, 7, db_session)
        assert reminder_service.send_payment_reminders(user.id)["total"] == 0

    def test_paid_sales_are_ignored(self, db_session, user, sale, mailbox, whatsapp):
        activate_plan(user, "Professional")
        _due_in(sale, -3, db_session)
        sale.status = "PAID"
        db_session.commit()
        assert reminder_service.send_payment_reminders(user.id)["total"] == 0

    def test_failed_seller_email_does_not_block_broker(self, db_session, user, sale, seller, mailbox, whatsapp):
        activate_plan(user, "Professional")
        _due_in(sale, -2, db_session)
        mailbox.fail_for.add(seller.email)

        summary = reminder_service.send_payment_reminders(user.id)

        result = summary["results"][0]
        assert result["email"] == {"seller": False, "broker": True}
        assert summary["successful"] == 1
        assert "OVERDUE" in mailbox.sent[0]["subject"]

    def test_manual_reminder_endpoint(self, client, db_session, user, headers, sale, mailbox, whatsapp):
        activate_plan(user, "Enterprise")
        resp = client.post(f"/api/v1/users/{user.id}/payment-reminders/send/{sale.id}", headers=headers)
        assert resp.status_code == 200
        assert resp.json["result"]["email"]["broker"] is True


class TestUpcoming:
    def test_overdue_first(self, db_session, user, book, seller, buyer, sale):
        from brokerbook.models import Sale
        later = Sale(book_id=book.id, seller_id=seller.id, buyer_id=buyer.id, invoice_number="INV-002")
        db_session.add(later)
        db_session.commit()
        _due_in(sale, 30, db_session)
        _due_in(later, -4, db_session)

        upcoming = reminder_service.upcoming_payments(user.id)
        assert [c.sale.invoice_number for c in upcoming] == ["INV-002", "INV-001"]
        assert upcoming[0].is_overdue

    def test_beyond_window_excluded(self, db_session, user, sale):
        _due_in(sale, 120, db_session)
        assert reminder_service.upcoming_payments(user.id) == []
