# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/bazaar/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users (identity is issued upstream; this only mirrors it locally):
# - python -m flask users create --email a@example.com --name "Ada"
# - python -m flask users list
# - python -m flask users deactivate a@example.com
#
# Capability inspection:
# - python -m flask perms matrix
#   Print the role -> capability table.
# - python -m flask perms check a@example.com my-store CHECKOUT
#   Resolve one (user, store, capability) decision and print the reason.
#
# Access grants:
# - python -m flask grants list my-store [--all]
#
# Orders:
# - python -m flask orders payment-status GRP-20260101-ABCDEF012345 PAID

import uuid

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import OrderGroup, Store, User
from .permissions import (
    ACCESS_LEVEL_CAPABILITIES,
    CAPABILITY_DEFINITIONS,
    MemberRole,
    ROLE_CAPABILITIES,
    get_capabilities_by_category,
    get_capability_definition,
)
from .services import access_grant_service, order_service, permission_service
from .services.errors import MarketplaceError


def _find_user(ref: str) -> User | None:
    """Look a user up by UUID or email."""
    try:
        return db.session.get(User, uuid.UUID(ref))
    except ValueError:
        return db.session.query(User).filter_by(email=ref.strip().lower()).first()


def _find_store(ref: str) -> Store | None:
    """Look a store up by UUID or slug."""
    try:
        return db.session.get(Store, uuid.UUID(ref))
    except ValueError:
        return db.session.query(Store).filter_by(slug=ref.strip().lower()).first()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date.")


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
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', 'full_name', prompt=True, help='Full name')
@with_appcontext
def create_user_cli(email, full_name):
    """Register a user id for an identity the upstream provider already knows."""
    email = email.strip().lower()
    if db.session.query(User.id).filter_by(email=email).first() is not None:
        click.echo(f"FAIL User '{email}' already exists")
        return

    user = User(email=email, full_name=full_name.strip(), is_active=True)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user: {user.email} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with active status."""
    users = db.session.query(User).order_by(User.email.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "INACTIVE"
        click.echo(f"{user.id}  {user.email:<32} {user.full_name:<24} {status}")


@users_group.command('deactivate')
@click.argument('user_ref')
@with_appcontext
def deactivate_user(user_ref):
    """Soft-delete a user; every store capability is denied afterwards."""
    user = _find_user(user_ref)
    if not user:
        click.echo(f"FAIL User '{user_ref}' not found")
        return
    user.is_active = False
    db.session.commit()
    click.echo(f"PASS Deactivated {user.email}")


@click.group('perms')
def perms_group():
    """Capability inspection commands."""


@perms_group.command('matrix')
def perms_matrix():
    """Print the role and access-level capability table."""
    roles = [role for role in MemberRole if role in ROLE_CAPABILITIES]
    header = f"{'CAPABILITY':<22}" + "".join(f"{role.value:<9}" for role in roles)
    header += "".join(f"{level.value:<14}" for level in ACCESS_LEVEL_CAPABILITIES)
    click.echo(header)
    categories = dict.fromkeys(category for _cap, _name, _description, category in CAPABILITY_DEFINITIONS)
    for category in categories:
        click.echo(f"-- {category} --")
        for capability, _name, _description, _category in get_capabilities_by_category(category):
            row = f"{capability.value:<22}"
            row += "".join(f"{'x' if capability in ROLE_CAPABILITIES[role] else '.':<9}" for role in roles)
            row += "".join(
                f"{'x' if capability in caps else '.':<14}" for caps in ACCESS_LEVEL_CAPABILITIES.values()
            )
            click.echo(row)
    click.echo("\nCUSTOM members hold exactly their stored capability list.")


@perms_group.command('check')
@click.argument('user_ref')
@click.argument('store_ref')
@click.argument('capability_code')
@with_appcontext
def check_permission_cli(user_ref, store_ref, capability_code):
    """Check whether a user may perform a capability on a store."""
    definition = get_capability_definition(capability_code.upper())
    if definition is None:
        click.echo(f"FAIL Unknown capability '{capability_code}'")
        return

    user = _find_user(user_ref)
    store = _find_store(store_ref)
    decision = permission_service.can_perform(
        user.id if user else None,
        store.id if store else None,
        definition["code"],
    )
    verdict = "PASS ALLOWED" if decision.allowed else "FAIL DENIED"
    click.echo(f"{verdict} {definition['code']} for '{user_ref}' on '{store_ref}' ({decision.reason})")


@click.group('grants')
def grants_group():
    """Private-store access grant inspection."""


@grants_group.command('list')
@click.argument('store_ref')
@click.option('--all', 'include_inactive', is_flag=True, help='Include revoked and expired grants')
@with_appcontext
def list_grants_cli(store_ref, include_inactive):
    """List access grants for a store."""
    store = _find_store(store_ref)
    if not store:
        click.echo(f"FAIL Store '{store_ref}' not found")
        return

    grants = access_grant_service.list_grants(store.id, include_inactive=include_inactive)
    if not grants:
        click.echo("No grants found.")
        return
    for access in grants:
        data = access.to_dict()
        state = "revoked" if access.is_revoked else "open"
        click.echo(
            f"{data['user_id']}  {data['access_level']:<13} granted {data['granted_at']}"
            f"  expires {data['expires_at'] or 'never'}  {state}"
        )


@click.group('orders')
def orders_group():
    """Order group maintenance."""


@orders_group.command('payment-status')
@click.argument('group_ref')
@click.argument('status')
@with_appcontext
def payment_status_cli(group_ref, status):
    """Record a payment status (PENDING, PAID, FAILED, REFUNDED) for a group."""
    group = db.session.query(OrderGroup).filter_by(group_number=group_ref.upper()).first()
    group_id = group.id if group else group_ref
    try:
        group = order_service.mark_payment_status(group_id, status)
    except MarketplaceError as exc:
        click.echo(f"FAIL {exc.message}")
        return
    click.echo(f"PASS {group.group_number} payment status is {group.payment_status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(grants_group)
    app.cli.add_command(orders_group)
