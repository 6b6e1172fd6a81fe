# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/accountsforge/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py and DEFAULT_PROFILE_ROLE (employee or salesman).
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@accountsforge.local]
#   Idempotent bootstrap: creates tables, seeds company settings, creates an admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --email a@b.c --password "Password123!" --role salesman
# - python -m flask users set-role a@b.c admin
#
# Profiles:
# - python -m flask profiles dedupe [--dry-run]
#   Keep the earliest profile per identity, delete the rest.
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .errors import ForgeError
from .extensions import db
from .models import Identity, Profile, Role
from .services import auth_service, maintenance_service, profile_service, settings_service


ROLE_CHOICES = click.Choice([r.value for r in Role])


@click.group('system')
def system_group():
    """System bootstrap and repair."""


@system_group.command('init')
@click.option('--admin-email', default='admin@accountsforge.local', show_default=True)
@click.option('--admin-password', default='Password123!', show_default=True)
@with_appcontext
def init_system(admin_email, admin_password):
    """
    Initialize AccountsForge.

    Idempotent: safe to run more than once.
    - Tables (db.create_all; use flask db upgrade in production)
    - Company settings (default_commission_rate, max_expense_amount, company_name, currency)
    - An admin identity with an admin profile
    """
    click.echo("START Initializing AccountsForge...")

    db.create_all()
    added = settings_service.ensure_defaults_seeded()
    click.echo(f"PASS Seeded {added} company settings")

    existing = db.session.query(Identity).filter_by(email=admin_email.lower()).first()
    if existing:
        click.echo(f"WARN  Admin '{admin_email}' already exists, skipping...")
    else:
        try:
            identity = auth_service.register_identity(admin_email, admin_password, full_name="Administrator")
            profile_service.ensure_profile(identity, role=Role.ADMIN)
            click.echo(f"PASS Created admin: {admin_email}")
        except ForgeError as e:
            click.echo(f"FAIL Failed to create admin '{admin_email}': {e.message}")
            return

    click.echo("\n" + "=" * 60)
    click.echo("DONE AccountsForge Initialized Successfully!")
    click.echo("=" * 60)
    click.echo("\nSECURITY Change the admin password before going to production.")


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
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete. Run: python -m flask system init")


@click.group('users')
def users_group():
    """Identity and role inspection/bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    rows = (
        db.session.query(Identity, Profile)
        .outerjoin(Profile, Profile.user_id == Identity.id)
        .order_by(Identity.created_at.asc())
        .all()
    )
    if not rows:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<38} {'Email':<32} {'Role':<10} {'Status'}")
    click.echo("=" * 90)
    for identity, profile in rows:
        role = profile.role.value if profile else "-"
        status = profile.status.value if profile else "no profile"
        click.echo(f"{identity.id:<38} {identity.email:<32} {role:<10} {status}")
    click.echo("=" * 90 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--full-name', default=None)
@click.option('--role', type=ROLE_CHOICES, default=None, help='Defaults to DEFAULT_PROFILE_ROLE')
@with_appcontext
def create_user_cli(email, password, full_name, role):
    """Create an identity and its profile."""
    try:
        identity = auth_service.register_identity(email, password, full_name=full_name)
        profile = profile_service.ensure_profile(identity, role=Role(role) if role else None)
    except ForgeError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created user: {identity.email} ({identity.id}) with role '{profile.role.value}'")


@users_group.command('set-role')
@click.argument('email')
@click.argument('role', type=ROLE_CHOICES)
@with_appcontext
def set_role_cli(email, role):
    identity = db.session.query(Identity).filter_by(email=email.lower()).first()
    if not identity:
        click.echo(f"FAIL User '{email}' not found")
        raise SystemExit(1)
    try:
        profile = profile_service.set_role_as_operator(identity.id, role)
    except ForgeError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS {email} is now '{profile.role.value}'")


@click.group('profiles')
def profiles_group():
    """Identity Store repair."""


@profiles_group.command('dedupe')
@click.option('--dry-run', is_flag=True, help='Report duplicates without deleting')
@with_appcontext
def dedupe_profiles_cli(dry_run):
    """Keep the earliest-created profile per identity, delete the others."""
    discarded = profile_service.dedupe_profiles(dry_run=dry_run)
    if not discarded:
        click.echo("PASS No duplicate profiles found")
        return
    verb = "Would delete" if dry_run else "Deleted"
    for p in discarded:
        click.echo(f"  {verb} profile {p.id} (user {p.user_id}, role {p.role.value})")
    click.echo(f"PASS {verb} {len(discarded)} duplicate profiles")


@click.group('maintenance')
def maintenance_group():
    """Maintenance tasks."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days. Role changes and identity removals are kept.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(profiles_group)
    app.cli.add_command(maintenance_group)
