# Overview: Flask CLI command groups for bootstrap, import, licensing and maintenance.

# backend/vendix/cli.py
# Commands Legend (run from the backend directory):
# - flask --app vendix db init
#   Create missing tables/collections in the selected storage backend.
# - flask --app vendix db snapshot [--output dump.json]
#   Dump every table/collection as JSON.
# - flask --app vendix db clear --yes
#   Delete all products, categories, sales and movements (license is kept).
# - flask --app vendix products import products.xlsx
#   Bulk-create products from an .xlsx or .csv file.
# - flask --app vendix license activate VENDIX-2025-PRO
# - flask --app vendix license status
# - flask --app vendix reports summary

import json

import click
from flask.cli import with_appcontext

from . import get_facade
from .validation import VendixError


def _fail(exc: VendixError):
    raise click.ClickException(f"{exc.__class__.__name__}: {exc}")


@click.group('db')
def db_group():
    """Storage bootstrap and maintenance commands."""


@db_group.command('init')
@with_appcontext
def init_db():
    """Create the schema in the selected backend (idempotent)."""
    facade = get_facade()
    try:
        facade.ensure_schema()
    except VendixError as e:
        _fail(e)
    click.echo(f"PASS Schema ready ({facade.mode} backend)")


@db_group.command('snapshot')
@click.option('--output', type=click.Path(dir_okay=False, writable=True), help='Write to a file instead of stdout')
@with_appcontext
def snapshot_db(output):
    """Dump all rows of every table/collection as JSON."""
    data = get_facade().snapshot()
    text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(text)
        click.echo(f"PASS Snapshot written to {output}")
    else:
        click.echo(text)


@db_group.command('clear')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def clear_db(yes):
    """
    DANGER: Delete all business data.

    Removes inventory movements, sale line items, sales, products and
    categories. The license row is kept.
    """
    if not yes:
        click.confirm("WARN This will DELETE all products, sales and movements. Are you sure?", abort=True)
    try:
        counts = get_facade().clear_database()
    except VendixError as e:
        _fail(e)
    for name, count in counts.items():
        click.echo(f"  {name}: {count} deleted")
    click.echo("PASS Database cleared")


@click.group('products')
def products_group():
    """Product catalog commands."""


@products_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_products(path):
    """Import products from an .xlsx or .csv file."""
    try:
        result = get_facade().import_products(path)
    except VendixError as e:
        _fail(e)
    click.echo(f"PASS Imported {result['imported']} product(s), {result['categories']} categor(ies)")
    for err in result["errors"]:
        click.echo(f"  row {err['row']}: {err['error']}")


@click.group('license')
def license_group():
    """License activation and status."""


@license_group.command('activate')
@click.argument('key')
@with_appcontext
def activate_license(key):
    try:
        get_facade().activate_license(key)
    except VendixError as e:
        _fail(e)
    click.echo("PASS License activated")


@license_group.command('status')
@with_appcontext
def license_status():
    facade = get_facade()
    row = facade.get_license()
    if row is None:
        click.echo("No license activated")
        return
    state = "active" if facade.is_licensed() else "inactive"
    click.echo(f"License {state} (activated {row['activated_at']}, expires {row['expires_at'] or 'never'})")


@click.group('reports')
def reports_group():
    """Read-only reports."""


@reports_group.command('summary')
@with_appcontext
def summary():
    """Revenue, cost and profit over all sales."""
    s = get_facade().financial_summary()
    click.echo(f"Sales:          {s['sale_count']}")
    click.echo(f"Revenue:        {s['revenue']:.2f}")
    click.echo(f"Cost:           {s['cost']:.2f}")
    click.echo(f"Profit:         {s['profit']:.2f}")
    click.echo(f"Average ticket: {s['average_ticket']:.2f}")
    click.echo(f"Products:       {s['product_count']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(db_group)
    app.cli.add_command(products_group)
    app.cli.add_command(license_group)
    app.cli.add_command(reports_group)
