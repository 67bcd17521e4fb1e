# Overview: Flask CLI command groups for bootstrap, tenant setup, and maintenance.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant setup:
# - python -m flask orgs list
# - python -m flask orgs create --name "Acme Corp"
# - python -m flask branches create --org-id 1 --name "Downtown" --location "Main St"
# - python -m flask users create --username alice --org-id 1 --branch-id 1
# - python -m flask users create --username root --super-admin
#
# Maintenance:
# - python -m flask maintenance find-orphans
#   List sale / purchase order headers without items (failed compensations).
# - python -m flask maintenance reconciliation-events [--all]
#   List reconciliation events (unresolved only unless --all).
# - python -m flask maintenance resolve-event 12
#   Mark a reconciliation event as resolved after manual cleanup.

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from .extensions import db
from .models import Branch, Organization, ReconciliationEvent, User
from .services.pipeline import find_orphan_headers
from .services.tenant_service import TenantContext
from .time_utils import utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables (idempotent)."""
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

    click.echo("PASS Database reset complete. Run 'python -m flask orgs create' to add a tenant.")


@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    """List all organizations."""
    orgs = db.session.query(Organization).order_by(Organization.id).all()

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Active':<8} {'Branches':<10} {'Users'}")
    click.echo("="*70)

    for org in orgs:
        branch_count = db.session.query(Branch).filter_by(organization_id=org.id).count()
        user_count = db.session.query(User).filter_by(organization_id=org.id).count()
        active_str = "Yes" if org.is_active else "No"

        click.echo(f"{org.id:<5} {org.name:<30} {active_str:<8} {branch_count:<10} {user_count}")

    click.echo("="*70 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@with_appcontext
def create_org_cli(name):
    """Create a new organization (tenant)."""
    org = Organization(name=name, is_active=True)
    db.session.add(org)
    db.session.commit()

    click.echo(f"PASS Created organization: {org.name} (ID: {org.id})")


@click.group('branches')
def branches_group():
    """Branch management commands."""


@branches_group.command('create')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--name', required=True, help='Branch name (unique within the organization)')
@click.option('--location', default=None, help='Branch location')
@with_appcontext
def create_branch_cli(org_id, name, location):
    """Create a branch within an organization."""
    org = db.session.get(Organization, org_id)
    if not org:
        click.echo(f"FAIL Organization {org_id} not found")
        return

    branch = Branch(organization_id=org.id, name=name, location=location)
    db.session.add(branch)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        click.echo(f"FAIL Branch '{name}' already exists in {org.name}")
        return

    click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id}) in {org.name}")


@click.group('users')
def users_group():
    """User profile commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', default=None, help='Display name')
@click.option('--org-id', type=int, default=None, help='Organization ID')
@click.option('--branch-id', type=int, default=None, help='Branch ID (must belong to the organization)')
@click.option('--super-admin', is_flag=True, help='No fixed scope; sees every tenant')
@with_appcontext
def create_user_cli(username, full_name, org_id, branch_id, super_admin):
    """Create a user profile with its tenant assignment."""
    if not super_admin and not org_id:
        click.echo("FAIL --org-id is required unless --super-admin is given")
        return

    if org_id and not db.session.get(Organization, org_id):
        click.echo(f"FAIL Organization {org_id} not found")
        return

    if branch_id:
        branch = db.session.get(Branch, branch_id)
        if not branch or branch.organization_id != org_id:
            click.echo(f"FAIL Branch {branch_id} not found in organization {org_id}")
            return

    user = User(
        username=username,
        full_name=full_name,
        organization_id=org_id,
        branch_id=branch_id,
        is_super_admin=super_admin,
        is_active=True,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        click.echo(f"FAIL Username '{username}' already exists")
        return

    scope = "super admin" if super_admin else f"org {org_id}, branch {branch_id or '-'}"
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, {scope})")


@click.group('maintenance')
def maintenance_group():
    """Reconciliation and cleanup commands."""


@maintenance_group.command('find-orphans')
@with_appcontext
def find_orphans_cli():
    """List headers with no items across all tenants."""
    everything = TenantContext(user_id=0, is_super_admin=True, organization_id=None, branch_id=None)
    orphans = find_orphan_headers(everything)

    total = sum(len(ids) for ids in orphans.values())
    if not total:
        click.echo("PASS No orphan headers found.")
        return

    for table, ids in orphans.items():
        if ids:
            click.echo(f"WARN {table}: {', '.join(str(i) for i in ids)}")


@maintenance_group.command('reconciliation-events')
@click.option('--all', 'show_all', is_flag=True, help='Include resolved events')
@with_appcontext
def list_reconciliation_events(show_all):
    """List reconciliation events recorded by failed compensations."""
    query = db.session.query(ReconciliationEvent)
    if not show_all:
        query = query.filter(ReconciliationEvent.resolved_at.is_(None))
    events = query.order_by(ReconciliationEvent.created_at.desc()).all()

    if not events:
        click.echo("No reconciliation events found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Type':<22} {'Entity':<18} {'Entity ID':<10} {'Org':<5} {'Resolved':<9} {'Reason'}")
    click.echo("="*100)
    for event in events:
        resolved = "Yes" if event.resolved_at else "No"
        click.echo(
            f"{event.id:<5} {event.event_type:<22} {event.entity_type:<18} {event.entity_id:<10} "
            f"{event.organization_id or '-':<5} {resolved:<9} {event.reason or ''}"
        )
    click.echo("="*100 + "\n")


@maintenance_group.command('resolve-event')
@click.argument('event_id', type=int)
@with_appcontext
def resolve_event_cli(event_id):
    """Mark a reconciliation event as resolved."""
    event = db.session.get(ReconciliationEvent, event_id)
    if not event:
        click.echo(f"FAIL Reconciliation event {event_id} not found")
        return
    event.resolved_at = utcnow()
    db.session.commit()
    click.echo(f"PASS Resolved reconciliation event {event_id}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)
    app.cli.add_command(branches_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
