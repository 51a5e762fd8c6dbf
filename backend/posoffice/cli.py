# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/posoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the owner account from OWNER_* settings.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Kasir 1" --email kasir1@email.com --password "Password123!" --role cashier
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired/revoked sessions older than the retention window.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import User
from .permissions import Role
from .services import session_service, user_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables (if missing) and seed the owner account."""
    click.echo("START Initializing POS back office...")

    db.create_all()
    click.echo("PASS Tables ready")

    cfg = current_app.config
    try:
        owner, created = user_service.ensure_owner(
            db.session,
            name=cfg["OWNER_NAME"],
            email=cfg["OWNER_EMAIL"],
            password=cfg["OWNER_PASSWORD"],
            phone=cfg.get("OWNER_PHONE"),
        )
    except ServiceError as e:
        click.echo(f"FAIL Could not create owner: {e.message}")
        raise SystemExit(1)

    if created:
        click.echo(f"PASS Created owner: {owner.email} (ID: {owner.id})")
        click.echo("WARN Change the owner password before production use!")
    else:
        click.echo(f"WARN Owner '{owner.email}' already exists, skipping...")

    click.echo("DONE System initialized")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to seed the owner.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.email:<32} {user.role:<8} {status}")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in Role]), prompt=True, help='Role')
@click.option('--phone', default=None, help='Phone number')
@with_appcontext
def create_user_cli(name, email, password, role, phone):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    payload = {"name": name, "email": email, "password": password, "role": role}
    if phone:
        payload["phone"] = phone
    try:
        user = user_service.create_user(db.session, payload)
    except ServiceError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    deleted = session_service.cleanup_expired_sessions(db.session)
    click.echo(f"PASS Deleted {deleted} expired/revoked sessions")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
