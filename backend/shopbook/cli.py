# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shopbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (existing data is kept).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users create-admin --email owner@shop.pk --password "Password123!" --full-name "Ali Khan"
#   Create a shop owner account plus its settings row.
# - python -m flask users list [--admin-id 1]
#   List users (optionally only one admin and its workers).
#
# Credits:
# - python -m flask credits refresh-status [--owner-id 1]
#   Recompute cached credit statuses against each owner's local date.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired or revoked session tokens older than the retention window.
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import auth_service
from .services import credit_service
from .services import maintenance_service
from .services import session_service
from .services import settings_service
from .validation import ValidationError, ConflictError
from .time_utils import today_in_timezone


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

    click.echo("PASS Database reset complete. Run 'python -m flask users create-admin' to add an owner.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create-admin')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--phone', 'phone_number', default=None, help='Phone number')
@click.option('--business-name', default=None, help='Business name shown on invoices')
@with_appcontext
def create_admin_cli(email, password, full_name, phone_number, business_name):
    """Create a shop owner account."""
    try:
        user = auth_service.create_admin(
            email=email,
            password=password,
            full_name=full_name,
            phone_number=phone_number,
            business_name=business_name,
        )
    except (ValidationError, ConflictError) as e:
        db.session.rollback()
        raise click.ClickException(str(e))

    click.echo(f"PASS Created admin {user.email} (ID: {user.id})")


@users_group.command('list')
@click.option('--admin-id', type=int, help='Only this admin and its workers')
@with_appcontext
def list_users(admin_id):
    """List users with role, owner and active status."""
    query = db.session.query(User)

    if admin_id:
        query = query.filter(db.or_(User.id == admin_id, User.admin_id == admin_id))

    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Owner':<6} {'Role':<8} {'Email':<35} {'Name':<25} {'Active'}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        owner = user.owner_id if user.owner_id is not None else "-"
        click.echo(f"{user.id:<5} {owner!s:<6} {user.role:<8} {user.email:<35} {user.full_name:<25} {active_str}")

    click.echo("="*100 + "\n")


@click.group('credits')
def credits_group():
    """Credit book maintenance commands."""


@credits_group.command('refresh-status')
@click.option('--owner-id', type=int, help='Only this owner')
@with_appcontext
def refresh_status_cli(owner_id):
    """
    Recompute remaining balance and status of every credit.

    Reads always recompute status, so this only refreshes the stored
    copy (for reports or external queries against the table).
    """
    def today_for(owner):
        return today_in_timezone(settings_service.get_settings(owner).timezone)

    changed = credit_service.refresh_statuses(owner_id, today_for=today_for)
    click.echo(f"Updated {changed} credit(s).")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@click.option('--owner-id', type=int, help='Only this owner')
@with_appcontext
def cleanup_security_events_cli(retention_days, owner_id):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days, owner_id=owner_id)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(credits_group)
    app.cli.add_command(maintenance_group)
