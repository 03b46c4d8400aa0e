# Overview: Flask CLI command groups for bootstrap, inspection, and stock maintenance.

# backend/stockledger/cli.py
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
# Users:
# - python -m flask users list
#   List all accounts.
# - python -m flask users create --full-name "Ana Owner" --email ana@example.com --password "Password123"
#   Create an account (prompts if options are omitted).
#
# Stock:
# - python -m flask stock init [--owner-id 1]
#   For products whose current_stock is 0, set it to total_units and log an
#   INITIAL_STOCK movement.

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import User
from .services.auth_service import create_user
from .services.products_service import initialize_all_stock


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
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

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(full_name, email, password):
    """
    Create a new account.

    Password must be at least 8 characters with an uppercase letter, a
    lowercase letter and a digit.
    """
    try:
        user = create_user(full_name=full_name, email=email, password=password)
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        for field, message in e.details.items():
            click.echo(f"     {field}: {message}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.full_name} ({user.email}) ID: {user.id}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all accounts."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Email':<40}")
    click.echo("=" * 80)
    for user in users:
        click.echo(f"{user.id:<5} {user.full_name:<30} {user.email:<40}")


@click.group('stock')
def stock_group():
    """Stock maintenance commands."""


@stock_group.command('init')
@click.option('--owner-id', type=int, help='Only initialize products of this user')
@with_appcontext
def init_stock(owner_id):
    """
    Seed current_stock from total_units for products that have none.

    Products already holding stock are skipped. Each seeded product gets an
    INITIAL_STOCK movement.
    """
    products = initialize_all_stock(owner_id=owner_id)

    if not products:
        click.echo("No products need stock initialization.")
        return

    for product in products:
        click.echo(f"PASS {product.name} (ID: {product.id}): stock set to {product.current_stock}")
    click.echo(f"PASS Initialized stock for {len(products)} products.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
