# Overview: Flask CLI command groups for bootstrap, inspection, and backup/restore.

# backend/canteen/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent) and the default app settings row.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Add a demo customer type, customers with opening deposits, and products.
#
# Ledger inspection:
# - python -m flask ledger verify [--customer-id 1001]
#   Check that every balance equals the sum of its non-voided transactions.
# - python -m flask ledger recent [--customer-id 1001] [--limit 20]
#   Print the most recent transactions.
#
# Backup/restore:
# - python -m flask ledger export --output backup.json
#   Write a point-in-time snapshot of the whole store.
# - python -m flask ledger import backup.json --yes
#   Replace the whole store with a snapshot (all or nothing).

import json

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import Customer, CustomerType, Product
from .money import format_cents
from .services import backup_service, ledger_service, reporting_service, settings_service
from .services.catalog_service import normalize_customer_id


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create tables that do not exist yet and the app settings row."""
    db.create_all()
    settings_service.get_app_settings()
    db.session.commit()
    click.echo("PASS Database initialized.")


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
    settings_service.get_app_settings()
    db.session.commit()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


DEMO_PRODUCTS = [
    {
        "product_id": "COFFEE",
        "name": "Coffee",
        "price_cents": 250,
        "barcode": "4000000000017",
        "category": "Drinks",
        "options": [
            {
                "id": "size",
                "name": "Size",
                "required": True,
                "multiple": False,
                "choices": [
                    {"id": "s", "label": "Small", "priceDelta": 0},
                    {"id": "l", "label": "Large", "priceDelta": 0.5},
                ],
            },
            {
                "id": "extras",
                "name": "Extras",
                "required": False,
                "multiple": True,
                "choices": [
                    {"id": "milk", "label": "Milk", "priceDelta": 0.2},
                    {"id": "syrup", "label": "Syrup", "priceDelta": 0.3},
                ],
            },
        ],
    },
    {"product_id": "SANDWICH", "name": "Sandwich", "price_cents": 450, "barcode": "4000000000024", "category": "Food"},
    {"product_id": "WATER", "name": "Water", "price_cents": 100, "barcode": "4000000000031", "category": "Drinks"},
]

DEMO_CUSTOMERS = [
    ("1001", "Alex Demo", 2000),
    ("1002", "Sam Demo", 500),
]


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Add demo data. Existing rows with the same ids are left alone."""
    staff = db.session.query(CustomerType).filter_by(name="Staff").first()
    if not staff:
        staff = CustomerType(name="Staff", discount_percent_bps=1000)
        db.session.add(staff)
        click.echo("PASS Created customer type: Staff (10%)")

    for fields in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(product_id=fields["product_id"]).first():
            click.echo(f"SKIP Product {fields['product_id']} already exists")
            continue
        db.session.add(Product(active=True, **fields))
        click.echo(f"PASS Created product: {fields['product_id']}")

    new_customers = []
    for customer_id, name, opening_cents in DEMO_CUSTOMERS:
        if db.session.query(Customer).filter_by(customer_id=customer_id).first():
            click.echo(f"SKIP Customer {customer_id} already exists")
            continue
        db.session.add(Customer(customer_id=customer_id, name=name, balance_cents=0, customer_type=staff))
        new_customers.append((customer_id, opening_cents))
    db.session.commit()

    for customer_id, opening_cents in new_customers:
        result = ledger_service.process_deposit(customer_id, opening_cents, note="Opening balance")
        click.echo(f"PASS Created customer {customer_id} with balance {format_cents(result.balance_after_cents)}")


@click.group('ledger')
def ledger_group():
    """Ledger inspection and backup/restore commands."""


def _customer_id_option(customer_id):
    try:
        return normalize_customer_id(customer_id)
    except LedgerError as e:
        raise click.ClickException(e.message)


@ledger_group.command('verify')
@click.option('--customer-id', default=None, help='Only check one customer')
@with_appcontext
def verify(customer_id):
    """Exit non-zero when any balance disagrees with its ledger."""
    if customer_id is not None:
        customer_id = _customer_id_option(customer_id)
    drifts = reporting_service.verify_balances(customer_id)
    if not drifts:
        click.echo("PASS All balances match their ledgers.")
        return

    for d in drifts:
        click.echo(
            f"FAIL {d.customer_id}: balance {format_cents(d.balance_cents)} "
            f"!= ledger {format_cents(d.ledger_sum_cents)} "
            f"(off by {format_cents(d.difference_cents)})"
        )
    raise SystemExit(1)


@ledger_group.command('recent')
@click.option('--customer-id', default=None, help='Filter by customer')
@click.option('--limit', default=20, type=int, help='Number of rows')
@with_appcontext
def recent(customer_id, limit):
    """Print the most recent transactions, newest first."""
    if customer_id is not None:
        rows = [
            tx.to_dict()
            for tx in reporting_service.get_customer_transactions(_customer_id_option(customer_id), limit=limit)
        ]
    else:
        rows = reporting_service.list_all_transactions(limit=limit)

    if not rows:
        click.echo("No transactions.")
        return

    for row in rows:
        flag = " [VOID]" if row["voided"] else ""
        label = row["product_name"] or row["note"] or ""
        click.echo(
            f"{row['timestamp']}  {row['transaction_id']}  {row['customer_id']}  "
            f"{row['type']:<10} {format_cents(row['amount_cents']):>10}  "
            f"-> {format_cents(row['balance_after_cents']):>10}  {label}{flag}"
        )


@ledger_group.command('export')
@click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True), default=None,
              help='File to write (default: stdout)')
@with_appcontext
def export_cmd(output):
    """Write a point-in-time JSON snapshot of the whole store."""
    snapshot = backup_service.export_snapshot()
    text = json.dumps(snapshot, indent=2, sort_keys=True)
    if output is None:
        click.echo(text)
        return
    with open(output, "w", encoding="utf-8") as fh:
        fh.write(text)
    click.echo(f"PASS Wrote {len(snapshot['transactions'])} transactions to {output}", err=True)


@ledger_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def import_cmd(path, yes):
    """
    DANGER: Replace every customer, product, setting and transaction with
    the snapshot's content.
    """
    if not yes:
        click.confirm("WARN This will REPLACE ALL DATA. Are you sure?", abort=True)

    with open(path, "r", encoding="utf-8") as fh:
        try:
            snapshot = json.load(fh)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"Invalid JSON: {e}")

    try:
        counts = backup_service.import_snapshot(snapshot)
    except LedgerError as e:
        raise click.ClickException(f"{e.message} {e.details or ''}".strip())

    click.echo(
        f"PASS Imported {counts['customers']} customers, {counts['products']} products, "
        f"{counts['transactions']} transactions."
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
