# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/pharmacy/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system create-super-admin --name "Root" --email root@pharmacy.local --password "Password123!"
#   Create the platform super_admin (no pharmacy).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Pharmacy management:
# - python -m flask pharmacies list
#   List all pharmacies with branch and user counts.
# - python -m flask pharmacies create --name "Green Cross" --code "GC"
#   Create a pharmacy (tenant).
# - python -m flask pharmacies add-branch --pharmacy-id 1 --name "Main Street"
#   Create a branch in a pharmacy.
#
# User inspection/bootstrap:
# - python -m flask users list [--pharmacy-id 1]
#   List users with role, placement and active status.
# - python -m flask users create --pharmacy-id 1 --name "Ada" --email ada@pharmacy.local --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
#
# Permission inspection:
# - python -m flask perms list [--role cashier] [--category SALES_MANAGEMENT]
#   List permissions (optionally filtered by role defaults or category).
# - python -m flask perms describe FINALIZE_SALE
#   Show a permission and which roles hold or exclude it.
# - python -m flask perms check ada@pharmacy.local VIEW_USERS
#   Check whether a user has a permission, and from which source.
# - python -m flask perms effective ada@pharmacy.local
#   Print a user's effective permission set.
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired or revoked sessions older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Branch, User
from .permissions import (
    ALL_ROLES,
    CATEGORY_INFO,
    DEFAULT_EVALUATOR,
    PERMISSION_DEFINITIONS,
    Principal,
    Role,
    get_permission_definition,
    get_permissions_by_role,
    is_permission_excluded_for_role,
)
from .services.auth_service import create_user, PasswordValidationError
from .services.permission_service import InvalidPermissionError
from .services import maintenance_service, pharmacy_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('create-super-admin')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Login email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_super_admin_cli(name, email, password):
    """Create the platform super_admin account."""
    try:
        user = create_user(
            name=name,
            email=email,
            password=password,
            role=Role.SUPER_ADMIN,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        return
    except ValueError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created super_admin: {user.email} (ID: {user.id})")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system create-super-admin' next.")


# =============================================================================
# PHARMACIES
# =============================================================================

@click.group('pharmacies')
def pharmacies_group():
    """Pharmacy and branch management."""


@pharmacies_group.command('list')
@with_appcontext
def list_pharmacies_cli():
    pharmacies = pharmacy_service.list_pharmacies()
    if not pharmacies:
        click.echo("No pharmacies found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Branches':<10} {'Users'}")
    click.echo("="*80)
    for pharmacy in pharmacies:
        branch_count = db.session.query(Branch).filter_by(pharmacy_id=pharmacy.id).count()
        user_count = db.session.query(User).filter_by(pharmacy_id=pharmacy.id).count()
        active_str = "yes" if pharmacy.is_active else "no"
        click.echo(
            f"{pharmacy.id:<5} {pharmacy.name:<30} {pharmacy.code or '-':<15} "
            f"{active_str:<8} {branch_count:<10} {user_count}"
        )
    click.echo("="*80 + "\n")


@pharmacies_group.command('create')
@click.option('--name', required=True, help='Pharmacy name')
@click.option('--code', help='Short code (unique)')
@with_appcontext
def create_pharmacy_cli(name, code):
    try:
        pharmacy = pharmacy_service.create_pharmacy(name=name, code=code)
    except pharmacy_service.PharmacyError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created pharmacy: {pharmacy.name} (ID: {pharmacy.id}, Code: {pharmacy.code or '-'})")


@pharmacies_group.command('add-branch')
@click.option('--pharmacy-id', type=int, required=True, help='Pharmacy ID')
@click.option('--name', required=True, help='Branch name')
@click.option('--code', help='Branch code (unique within pharmacy)')
@click.option('--address', help='Street address')
@with_appcontext
def add_branch_cli(pharmacy_id, name, code, address):
    try:
        branch = pharmacy_service.create_branch(pharmacy_id, name=name, code=code, address=address)
    except pharmacy_service.PharmacyError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id}, Pharmacy: {pharmacy_id})")


# =============================================================================
# USERS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--pharmacy-id', type=int, help='Pharmacy ID')
@click.option('--branch-id', type=int, help='Branch ID (implies pharmacy)')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Login email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r for r in ALL_ROLES if r != Role.SUPER_ADMIN]), prompt=True)
@click.option('--manager', 'is_manager', is_flag=True, help='Grant manager-tier permissions')
@with_appcontext
def create_user_cli(pharmacy_id, branch_id, name, email, password, role, is_manager):
    """Create a pharmacy user without hierarchy checks (bootstrap)."""
    try:
        user = create_user(
            name=name,
            email=email,
            password=password,
            role=role,
            pharmacy_id=pharmacy_id,
            branch_id=branch_id,
            is_manager=is_manager,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        return
    except (InvalidPermissionError, ValueError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) role={user.role} pharmacy={user.pharmacy_id}")


@users_group.command('list')
@click.option('--pharmacy-id', type=int, help='Filter by pharmacy')
@with_appcontext
def list_users_cli(pharmacy_id):
    query = db.session.query(User)
    if pharmacy_id is not None:
        query = query.filter_by(pharmacy_id=pharmacy_id)
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Email':<35} {'Role':<12} {'Mgr':<5} {'Pharmacy':<10} {'Branch':<8} {'Active'}")
    click.echo("="*100)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.email:<35} {user.role:<12} {'yes' if user.is_manager else 'no':<5} "
            f"{user.pharmacy_id or '-':<10} {user.branch_id or '-':<8} {'yes' if user.is_active else 'no'}"
        )
    click.echo("="*100 + "\n")


# =============================================================================
# PERMISSIONS
# =============================================================================

@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', help='Show the default permissions of a role')
@click.option('--category', help='Filter by category')
def list_permissions_cli(role, category):
    """List permissions, optionally filtered by role defaults or category."""
    definitions = PERMISSION_DEFINITIONS
    if role:
        if role not in ALL_ROLES:
            click.echo(f"FAIL Role '{role}' not found")
            return
        defaults = set(get_permissions_by_role(role))
        definitions = [perm for perm in definitions if perm[0] in defaults]
    if category:
        if category not in CATEGORY_INFO:
            click.echo(f"FAIL Category '{category}' not found")
            return
        definitions = [perm for perm in definitions if perm[3] == category]

    click.echo(f"\n{'Code':<30} {'Name':<30} {'Category'}")
    click.echo("-"*90)
    for code, name, _description, perm_category in definitions:
        click.echo(f"{code:<30} {name:<30} {perm_category}")
    click.echo(f"\n Total: {len(definitions)} permissions\n")


@perms_group.command('describe')
@click.argument('code')
def describe_permission_cli(code):
    definition = get_permission_definition(code)
    if definition is None:
        click.echo(f"FAIL Unknown permission '{code}'")
        return

    click.echo(f"{definition['code']}: {definition['name']}")
    click.echo(f"  {definition['description']}")
    click.echo(f"  Category: {definition['category']}")
    for role in ALL_ROLES:
        if is_permission_excluded_for_role(role, code):
            status = "excluded"
        elif code in get_permissions_by_role(role):
            status = "default"
        else:
            status = "-"
        click.echo(f"  {role:<12} {status}")


def _find_user(email: str) -> User | None:
    return db.session.query(User).filter_by(email=email.strip().lower()).order_by(User.id.asc()).first()


@perms_group.command('check')
@click.argument('email')
@click.argument('code')
@with_appcontext
def check_permission_cli(email, code):
    """Check whether a user has a permission."""
    user = _find_user(email)
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    principal = Principal.from_user(user)
    if DEFAULT_EVALUATOR.has_permission(principal, code):
        source = DEFAULT_EVALUATOR.get_permission_source(principal, code)
        click.echo(f"PASS {user.email} ({user.role}) HAS {code} [{source}]")
    else:
        click.echo(f"FAIL {user.email} ({user.role}) does NOT have {code}")


@perms_group.command('effective')
@click.argument('email')
@with_appcontext
def effective_permissions_cli(email):
    user = _find_user(email)
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    principal = Principal.from_user(user)
    effective = sorted(DEFAULT_EVALUATOR.get_effective_permissions(principal))
    click.echo(f"{user.email} ({user.role}{', manager' if user.is_manager else ''}): {len(effective)} permissions")
    for code in effective:
        click.echo(f"  {code:<30} {DEFAULT_EVALUATOR.get_permission_source(principal, code)}")


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Retention cleanup commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """Cleanup old security events."""
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    deleted = maintenance_service.cleanup_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} expired or revoked sessions older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(pharmacies_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
