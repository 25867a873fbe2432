# Overview: Flask CLI command groups for tenant bootstrap, snapshots, and ledger audits.

# backend/bizledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Bootstrap:
# - python -m flask init-db
#   Create all tables directly (dev/test; use `flask db upgrade` in production).
#
# Tenants:
# - python -m flask tenants list
# - python -m flask tenants create "Acme Hardware" ACME
#   Create a tenant and seed its receipt / purchase order counters.
#
# Reporting:
# - python -m flask snapshots generate --tenant ACME [--date 2026-10-16] [--item-id 3]
#   Record opening/closing quantities for one day (existing rows are skipped).
# - python -m flask ledger audit [--tenant ACME]
#   Compare every item's quantity with the sum of its ledger entries.

import click
from flask import current_app
from flask.cli import with_appcontext

from .decorators import with_retry
from .errors import LedgerError
from .extensions import db
from .services import reporting_service, tenant_service
from .time_utils import today_utc


@click.command('init-db')
@with_appcontext
def init_db():
    """Create all tables for the configured database."""
    db.create_all()
    click.echo(f"PASS Tables created on {current_app.config['SQLALCHEMY_DATABASE_URI']}")


# =============================================================================
# TENANTS
# =============================================================================

@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = tenant_service.list_tenants()
    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "=" * 60)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active'}")
    click.echo("=" * 60)
    for tenant in tenants:
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.code:<15} {active_str}")
    click.echo("=" * 60 + "\n")


@tenants_group.command('create')
@click.argument('name')
@click.argument('code')
@with_appcontext
def create_tenant_cli(name, code):
    """Create a new tenant with its numbering counters."""
    try:
        tenant = tenant_service.create_tenant(name=name, code=code)
    except LedgerError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Code: {tenant.code})")


# =============================================================================
# SNAPSHOTS
# =============================================================================

@click.group('snapshots')
def snapshots_group():
    """Daily stock snapshot commands."""


@snapshots_group.command('generate')
@click.option('--tenant', 'tenant_code', required=True, help='Tenant code')
@click.option('--date', 'day', type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help='Snapshot day (YYYY-MM-DD, default: today UTC)')
@click.option('--item-id', type=int, default=None, help='Only snapshot this item')
@with_appcontext
def generate_snapshots(tenant_code, day, item_id):
    """Record opening/closing quantities for a day, skipping existing rows."""
    snapshot_day = day.date() if day else today_utc()
    try:
        tenant = tenant_service.get_tenant_by_code(tenant_code)
        created = with_retry(lambda: reporting_service.generate_daily_snapshots(
            tenant_id=tenant.id,
            day=snapshot_day,
            item_id=item_id,
            skip_existing=True,
        ))
    except LedgerError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)

    click.echo(f"PASS Generated {len(created)} snapshots for {tenant.code} on {snapshot_day.isoformat()}")


# =============================================================================
# LEDGER
# =============================================================================

@click.group('ledger')
def ledger_group():
    """Ledger inspection commands."""


@ledger_group.command('audit')
@click.option('--tenant', 'tenant_code', default=None, help='Tenant code (default: all tenants)')
@with_appcontext
def audit_ledger(tenant_code):
    """Check that stored quantities equal the sum of ledger deltas."""
    if tenant_code:
        try:
            tenants = [tenant_service.get_tenant_by_code(tenant_code)]
        except LedgerError as exc:
            click.echo(f"FAIL {exc.message}")
            raise SystemExit(1)
    else:
        tenants = tenant_service.list_tenants()

    failed = False
    for tenant in tenants:
        result = reporting_service.ledger_consistency_audit(tenant_id=tenant.id)
        if result["consistent"]:
            click.echo(f"PASS {tenant.code}: {result['items_checked']} items consistent")
            continue
        failed = True
        click.echo(f"FAIL {tenant.code}: {len(result['issues'])} of {result['items_checked']} items inconsistent")
        for issue in result["issues"]:
            click.echo(
                f"  - item {issue['item_id']} ({issue['sku']}): quantity={issue['quantity']} "
                f"ledger={issue['ledger_quantity']} problems={','.join(issue['problems'])}"
            )

    if failed:
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(init_db)
    app.cli.add_command(tenants_group)
    app.cli.add_command(snapshots_group)
    app.cli.add_command(ledger_group)
