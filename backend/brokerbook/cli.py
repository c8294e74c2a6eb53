# Overview: Flask CLI command groups for bootstrap, inspection, reminders and maintenance.

# backend/brokerbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with verification status and active plan.
# - python -m flask users create --name "Broker" --email broker@example.com --password "Password123!"
#   Create a verified user (prompts if options are omitted).
#
# Payment reminders:
# - python -m flask reminders send [--user-id <uuid>]
#   Send every reminder due today. Schedule daily, e.g. cron "0 9 * * *".
# - python -m flask reminders upcoming --user-id <uuid>
#   Show open sales due within 90 days.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired/revoked session tokens older than 30 days.
# - python -m flask maintenance cleanup-otps
#   Delete expired OTP codes.
# - python -m flask maintenance expire-subscriptions
#   Mark ACTIVE subscriptions past their end date as EXPIRED.
# - python -m flask maintenance reconcile-totals
#   Recompute sale and goods return totals from their line items.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.auth_service import create_user, validate_password_strength, PasswordValidationError
from .services.otp_service import cleanup_expired_otps
from .services.session_service import cleanup_expired_sessions
from .services.subscription_service import expire_subscriptions, resolve_active_plan
from .services.line_item_service import reconcile_all_totals
from .services import reminder_service
from .validation import ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--phone', default=None, help='Phone number')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(name, email, password, phone):
    """Create a verified user without the OTP round trip."""
    try:
        validate_password_strength(password)
        user = create_user(name, email, password, phone)
    except (PasswordValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their active plan."""
    users = db.session.query(User).order_by(User.created_at.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<38} {'Email':<32} {'Verified':<9} {'Active':<8} {'Plan'}")
    click.echo("="*110)

    for user in users:
        plan = resolve_active_plan(user.id).plan_name.value
        verified_str = "Yes" if user.is_verified else "No"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<38} {user.email:<32} {verified_str:<9} {active_str:<8} {plan}")

    click.echo("="*110 + "\n")


@click.group('reminders')
def reminders_group():
    """Commission payment reminder commands."""


@reminders_group.command('send')
@click.option('--user-id', default=None, help='Only this user (default: everyone)')
@with_appcontext
def send_reminders_cli(user_id):
    """
    Send every payment reminder due today.

    Intended for a daily schedule at 09:00.
    """
    summary = reminder_service.send_payment_reminders(user_id)
    click.echo(
        f"PASS {summary['total']} processed, {summary['successful']} delivered, "
        f"{summary['failed']} failed, {summary['skipped']} skipped by plan"
    )
    for result in summary["results"]:
        email = result["email"]
        click.echo(
            f"  {result['invoice_number'] or result['sale_id']}: "
            f"whatsapp={result['whatsapp']} seller_email={email['seller']} broker_email={email['broker']}"
        )


@reminders_group.command('upcoming')
@click.option('--user-id', required=True, help='User ID')
@with_appcontext
def upcoming_cli(user_id):
    """List open sales due within the next 90 days."""
    candidates = reminder_service.upcoming_payments(user_id)
    if not candidates:
        click.echo("No upcoming payments.")
        return

    for candidate in candidates:
        data = candidate.to_dict()
        label = "OVERDUE" if data["is_overdue"] else f"in {data['days_until_due']}d"
        click.echo(
            f"{data['invoice_number'] or data['sale_id']:<20} due {data['due_date']} ({label}) "
            f"commission {data['commission_amount']:.2f}"
        )


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    deleted = cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired or revoked sessions.")


@maintenance_group.command('cleanup-otps')
@with_appcontext
def cleanup_otps_cli():
    deleted = cleanup_expired_otps()
    click.echo(f"Deleted {deleted} expired OTPs.")


@maintenance_group.command('expire-subscriptions')
@with_appcontext
def expire_subscriptions_cli():
    expired = expire_subscriptions()
    click.echo(f"Expired {expired} subscriptions.")


@maintenance_group.command('reconcile-totals')
@with_appcontext
def reconcile_totals_cli():
    """Rebuild stored aggregates from line items and report how many changed."""
    changed = reconcile_all_totals()
    click.echo(f"Reconciled totals; {changed} rows corrected.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(reminders_group)
    app.cli.add_command(maintenance_group)
