# Overview: Flask CLI command groups for bootstrap, catalog checks, and order maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (prefer `flask db upgrade` in production).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog checks:
# - python -m flask catalog check-counters
#   Report has_variants products whose max/sold counters disagree with their variants.
#
# Orders:
# - python -m flask orders show cs_test_123
#   Print an order with its lines.
# - python -m flask orders set-status cs_test_123 shipped --tracking 1Z999
#   Set an order's status (shipped stamps shipped_at, applied stamps applied_at).

import sys

import click
from flask.cli import with_appcontext

from .domain import ORDER_STATUSES
from .extensions import db
from .services import catalog_service, order_service
from .services.order_service import OrderNotFoundError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Tables created.")


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


@click.group('catalog')
def catalog_group():
    """Catalog consistency checks."""


@catalog_group.command('check-counters')
@with_appcontext
def check_counters():
    """
    Compare product counters with the sums of their variants.

    Exits non-zero when any product disagrees.
    """
    mismatches = catalog_service.find_counter_mismatches(db.session)
    if not mismatches:
        click.echo("PASS All variant counters consistent.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'Product':<24} {'Max':>8} {'Var Max':>8} {'Sold':>8} {'Var Sold':>9}")
    click.echo("="*90)
    for row in mismatches:
        click.echo(
            f"{row['product_id']:<24} {str(row['max_quantity']):>8} {str(row['variant_max_quantity']):>8} "
            f"{row['sold_quantity']:>8} {row['variant_sold_quantity']:>9}"
        )
    click.echo("="*90)
    click.echo(f"FAIL {len(mismatches)} product(s) with inconsistent counters.")
    sys.exit(1)


@click.group('orders')
def orders_group():
    """Order inspection and maintenance."""


@orders_group.command('show')
@click.argument('order_id')
@with_appcontext
def show_order(order_id):
    """Print an order and its lines."""
    order = order_service.get_order(db.session, order_id)
    if order is None:
        click.echo(f"FAIL Order {order_id} not found.")
        sys.exit(1)

    click.echo(f"Order:    {order.id}")
    click.echo(f"Type:     {order.order_type}")
    click.echo(f"Status:   {order.status}")
    click.echo(f"Customer: {order.customer_email}")
    click.echo(f"Total:    {order.total_cents / 100:.2f} {order.currency.upper()}")
    if order.order_metadata:
        click.echo(f"Metadata: {order.order_metadata}")
    for item in order.items:
        variant = f" ({item.variant_name})" if item.variant_name else ""
        click.echo(f"  - {item.quantity} x {item.product_name}{variant} @ {item.unit_price_cents / 100:.2f}")


@orders_group.command('set-status')
@click.argument('order_id')
@click.argument('status', type=click.Choice(ORDER_STATUSES))
@click.option('--tracking', 'tracking_number', help='Tracking number (shipped only)')
@with_appcontext
def set_status(order_id, status, tracking_number):
    """
    Set an order's status.

    Transitions are not validated; use with care for deposit orders.
    """
    try:
        order = order_service.update_order_status(db.session, order_id, status, tracking_number)
    except OrderNotFoundError:
        click.echo(f"FAIL Order {order_id} not found.")
        sys.exit(1)

    click.echo(f"PASS Order {order.id} is now {order.status}.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(orders_group)
