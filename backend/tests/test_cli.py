"""
CLI command tests.

Uses Flask's CliRunner against the shared in-memory database.
"""

from datetime import datetime

from brokerbook.models import User
from conftest import PASSWORD, activate_plan


class TestUsersCommands:
    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--name", "Meena", "--email", "Meena@Example.com", "--password", PASSWORD,
        ])
        assert result.exit_code == 0, result.output
        assert "PASS Created user meena@example.com" in result.output

        user = db_session.query(User).filter_by(email="meena@example.com").one()
        assert user.is_verified is True

        listing = runner.invoke(args=["users", "list"])
        assert "meena@example.com" in listing.output
        assert "Basic" in listing.output

    def test_weak_password_fails(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "users", "create", "--name", "X", "--email", "x@example.com", "--password", "weak",
        ])
        assert result.exit_code != 0
        assert "at least 8 characters" in result.output


class TestMaintenanceCommands:
    def test_expire_subscriptions(self, app, db_session, user):
        subscription = activate_plan(user, "Professional")
        subscription.end_date = datetime(2020, 1, 1)
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["maintenance", "expire-subscriptions"])
        assert result.exit_code == 0
        assert "Expired 1 subscriptions." in result.output

    def test_cleanup_otps(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-otps"])
        assert result.exit_code == 0
        assert "Deleted 0 expired OTPs." in result.output

    def test_reconcile_totals(self, app, db_session, sale):
        result = app.test_cli_runner().invoke(args=["maintenance", "reconcile-totals"])
        assert result.exit_code == 0
        assert "0 rows corrected" in result.output


class TestReminderCommands:
    def test_send_reports_summary(self, app, db_session, user, sale, mailbox, whatsapp):
        result = app.test_cli_runner().invoke(args=["reminders", "send"])
        assert result.exit_code == 0
        assert "0 processed" in result.output


class TestHealth:
    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"
