# Overview: Flask CLI command groups for bootstrap and ledger inspection.

# backend/posledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables (if missing) and seed the default chart of accounts.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Ledger:
# - python -m flask ledger init-accounts
#   Idempotently create any missing default accounts (11000 Cash ... 61000 Operating Expenses).
# - python -m flask ledger trial-balance
#   Print every account balance plus total debits and credits posted.

import click
from flask.cli import with_appcontext
from sqlalchemy import func

from .extensions import db
from .models import LedgerTransaction
from .services import ledger_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and seed the default chart of accounts."""
    click.echo("START Initializing POS ledger...")
    db.create_all()
    created = ledger_service.ensure_default_accounts()
    db.session.commit()
    click.echo(f"PASS Tables ready, {len(created)} default accounts created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('ledger')
def ledger_group():
    """Chart of accounts and ledger inspection."""


@ledger_group.command('init-accounts')
@with_appcontext
def init_accounts():
    """Create any missing default accounts."""
    created = ledger_service.ensure_default_accounts()
    db.session.commit()
    if not created:
        click.echo("PASS Chart of accounts already complete")
        return
    for account in created:
        click.echo(f"PASS Created account {account.code} {account.name} ({account.type})")


@ledger_group.command('trial-balance')
@with_appcontext
def trial_balance():
    """Print account balances and debit/credit totals."""
    accounts = ledger_service.list_accounts()
    if not accounts:
        click.echo("No accounts found. Run: python -m flask ledger init-accounts")
        return

    click.echo("\n" + "=" * 72)
    click.echo(f"{'Code':<8} {'Name':<32} {'Type':<10} {'Balance':>18}")
    click.echo("=" * 72)
    for account in accounts:
        click.echo(
            f"{account.code:<8} {account.name[:32]:<32} {account.type:<10} "
            f"{(account.balance_cents or 0) / 100:>18,.2f}"
        )
    click.echo("=" * 72)

    totals = dict(
        db.session.query(LedgerTransaction.type, func.coalesce(func.sum(LedgerTransaction.amount_cents), 0))
        .group_by(LedgerTransaction.type)
        .all()
    )
    debits = int(totals.get("debit", 0))
    credits = int(totals.get("credit", 0))
    click.echo(f"Total debits:  {debits / 100:,.2f}")
    click.echo(f"Total credits: {credits / 100:,.2f}")
    click.echo("")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
