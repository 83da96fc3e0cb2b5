# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/furnipos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: tables, default owner, default warehouse, register balances.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete expired and revoked session tokens.
# - python -m flask system prune-notifications --days 30
#   Delete notification outbox rows older than N days.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --username ali --full-name "Ali Karimov" --password "secret1" --role CASHIER_SALES
#   Create a user (prompts if options are omitted).
#
# Permission inspection:
# - python -m flask perms list --role MASTER
#   List permissions (optionally only those a role gets by default).
# - python -m flask perms check ali sale:product
#   Check whether a user has a permission.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import User, Warehouse
from .permissions import ALL_ROLES, DEFAULT_ROLE_PERMISSIONS, PERMISSION_DEFINITIONS, Role
from .services.auth_service import create_user
from .services import permission_service
from .services.register_service import ensure_register_balances
from .services.session_service import cleanup_expired_sessions
from .services.notification_service import prune_events


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--warehouse', 'warehouse_name', default='Main Warehouse', help='Default warehouse name')
@with_appcontext
def init_system(warehouse_name):
    """
    Initialize the store: schema, owner account, warehouse and cash registers.

    Creates:
    - All tables (no-op for existing ones)
    - Owner user from DEFAULT_OWNER_USERNAME / DEFAULT_OWNER_PASSWORD
    - A default warehouse when none exists
    - SALES and SERVICE register balance rows

    SECURITY: Change the owner password immediately in production!
    """
    click.echo("START Initializing FurniPOS...")
    db.create_all()

    username = current_app.config["DEFAULT_OWNER_USERNAME"]
    owner = db.session.query(User).filter_by(role=Role.OWNER).first()
    if owner:
        click.echo(f"PASS Using existing owner: {owner.username} (ID: {owner.id})")
    else:
        owner = create_user(
            username=username,
            password=current_app.config["DEFAULT_OWNER_PASSWORD"],
            full_name="Owner",
            role=Role.OWNER,
        )
        click.echo(f"PASS Created owner: {owner.username} (ID: {owner.id})")

    warehouse = db.session.query(Warehouse).first()
    if warehouse:
        click.echo(f"PASS Using existing warehouse: {warehouse.name} (ID: {warehouse.id})")
    else:
        warehouse = Warehouse(name=warehouse_name)
        db.session.add(warehouse)
        db.session.commit()
        click.echo(f"PASS Created warehouse: {warehouse.name} (ID: {warehouse.id})")

    ensure_register_balances()
    db.session.commit()
    click.echo("PASS Cash registers ready: SALES, SERVICE")

    click.echo("\n" + "="*60)
    click.echo("DONE FurniPOS Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nSECURITY WARNING: change the owner password in production!\n")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired and revoked session tokens."""
    deleted = cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session(s)")


@system_group.command('prune-notifications')
@click.option('--days', type=click.IntRange(min=1), default=30, show_default=True,
              help='Delete events older than this many days')
@with_appcontext
def prune_notifications(days):
    """Delete notification outbox rows older than --days."""
    deleted = prune_events(days)
    click.echo(f"PASS Deleted {deleted} notification event(s) older than {days} day(s)")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ALL_ROLES)), prompt=True, help='Role')
@click.option('--phone', default=None, help='Phone number')
@with_appcontext
def create_user_cli(username, full_name, password, role, phone):
    """Create a new user interactively."""
    try:
        user = create_user(
            username=username,
            password=password,
            full_name=full_name,
            role=role,
            phone=phone,
        )
    except ServiceError as e:
        db.session.rollback()
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Full name':<28} {'Role':<18} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.full_name:<28} {user.role:<18} {active_str}")

    click.echo("="*80 + "\n")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(list(ALL_ROLES)), help='Only permissions this role gets by default')
@with_appcontext
def list_permissions_cli(role):
    """List all permissions, optionally filtered by role."""
    allowed = DEFAULT_ROLE_PERMISSIONS[role] if role else None

    click.echo("\n" + "="*80)
    click.echo(f"{'Code':<26} {'Category':<14} {'Name'}")
    click.echo("="*80)
    for code, name, _description, category in PERMISSION_DEFINITIONS:
        if allowed is not None and code not in allowed:
            continue
        click.echo(f"{code:<26} {category:<14} {name}")
    click.echo("="*80 + "\n")


@perms_group.command('check')
@click.argument('username')
@click.argument('permission_code')
@with_appcontext
def check_permission_cli(username, permission_code):
    """Check if a user has a specific permission."""
    user = db.session.query(User).filter_by(username=username).first()

    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    if permission_service.user_has_permission(user, permission_code):
        source = permission_service.permission_source(user)
        click.echo(f"PASS User '{username}' HAS permission '{permission_code}' (via {source})")
    else:
        click.echo(f"FAIL User '{username}' does NOT have permission '{permission_code}'")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
