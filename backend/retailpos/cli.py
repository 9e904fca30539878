# Overview: Flask CLI command groups for bootstrap, stock maintenance and invoice inspection.

# backend/retailpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to retailpos (PowerShell: $env:FLASK_APP="retailpos").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, a demo store, category, products and users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock:
# - python -m flask stock adjust 12 -- -3 --note "Damaged"
#   Administrative adjustment through the Stock Ledger (never below zero).
# - python -m flask stock low --store-id 1
#   Products at or below their category's low-stock threshold.
#
# Invoices:
# - python -m flask invoices list --store-id 1 --limit 20
#   Most recent invoices with totals.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .models import Category, Product, Store, User
from .services import invoice_service, stock_service
from .services.auth_service import PasswordValidationError, create_user
from .services.catalog_service import create_category, create_product, create_store
from .services.pricing_service import cents_to_decimal

DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--store-name', default='Demo Store', help='Name of the demo store')
@with_appcontext
def init_system(store_name):
    """
    Create the schema and seed a demo store with users.

    Safe to run repeatedly; existing rows are reused.
    """
    click.echo("START Initializing retailpos...")
    db.create_all()

    store = db.session.query(Store).filter_by(name=store_name).first()
    if not store:
        store = create_store({"name": store_name, "owner_name": "Store Owner", "currency": "INR"})
        click.echo(f"PASS Created store: {store.name} (ID: {store.id})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    category = db.session.query(Category).filter_by(store_id=store.id, name="General").first()
    if not category:
        category = create_category(store.id, {"name": "General", "default_gst_bps": 1800})
        click.echo(f"PASS Created category: {category.name} (GST 18%)")

    if not db.session.query(Product).filter_by(store_id=store.id).first():
        for name, sku, price_cents, qty in (
            ("Notebook", "NB-001", 10000, 25),
            ("Ball Pen", "BP-001", 1500, 100),
            ("Stapler", "ST-001", 24900, 5),
        ):
            create_product(store.id, {
                "category_id": category.id,
                "name": name,
                "sku": sku,
                "price_cents": price_cents,
                "stock_qty": qty,
            })
        click.echo("PASS Created demo products")

    click.echo("\nUSERS Creating default users...")
    for username, role, store_id in (
        ("admin", "SUPER_ADMIN", None),
        ("manager", "STORE_ADMIN", store.id),
        ("cashier", "CASHIER", store.id),
    ):
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            create_user(username, DEFAULT_PASSWORD, role=role, store_id=store_id)
            click.echo(f"PASS Created user: {username} with role '{role}'")
        except (PasswordValidationError, ValueError) as e:
            click.echo(f"FAIL Failed to create user '{username}': {str(e)}")

    click.echo("\nDONE retailpos initialized")
    click.echo(f"Store: {store.name} (ID: {store.id})")
    click.echo(f"Default password for admin/manager/cashier: {DEFAULT_PASSWORD} (CHANGE IN PRODUCTION!)")


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
    click.echo("BUILD Creating tables...")
    db.create_all()
    click.echo("PASS Database reset. Run: python -m flask system init")


@click.group('stock')
def stock_group():
    """Stock Ledger maintenance."""


@stock_group.command('adjust')
@click.argument('product_id', type=int)
@click.argument('delta', type=int)
@click.option('--note', default=None, help='Reason recorded on the stock movement')
@with_appcontext
def adjust_stock(product_id, delta, note):
    """Add (positive DELTA) or remove (negative DELTA) stock."""
    try:
        product = stock_service.adjust_quantity(
            product_id,
            delta,
            note=note,
            attempts=current_app.config["ISSUANCE_MAX_ATTEMPTS"],
            backoff_base=current_app.config["ISSUANCE_BACKOFF_BASE"],
        )
    except PosError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {product.name} (ID: {product.id}) stock is now {product.stock_qty}")


@stock_group.command('low')
@click.option('--store-id', type=int, required=True)
@with_appcontext
def low_stock(store_id):
    """List products at or below their low-stock threshold."""
    products = stock_service.low_stock_products(store_id)
    if not products:
        click.echo("No low-stock products.")
        return
    for p in products:
        click.echo(f"{p.id:>6}  {p.sku or '-':<12} {p.name:<30} qty={p.stock_qty} threshold={p.category.low_stock_threshold}")


@click.group('invoices')
def invoices_group():
    """Invoice inspection (read-only)."""


@invoices_group.command('list')
@click.option('--store-id', type=int, default=None)
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_invoices(store_id, limit):
    invoices = invoice_service.list_invoices(store_id, limit=limit)
    if not invoices:
        click.echo("No invoices found.")
        return
    for inv in invoices:
        click.echo(
            f"{inv.invoice_number:<28} store={inv.store_id} "
            f"{inv.date:%Y-%m-%d %H:%M} {inv.payment_method:<5} "
            f"lines={len(inv.items)} total={cents_to_decimal(inv.grand_total_cents)}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(invoices_group)
