"""Ledger transaction commands."""

import click
from ledgerrec.domain.ledger import LedgerService
from ledgerrec.utils.amount_parser import format_amount, parse_amount
from ledgerrec.utils.date_parser import parse_date
from ledgerrec.cli.context import get_db, get_tenant, resolve_account_or_exit
from ledgerrec.cli.error_handling import handle_domain_error


@click.group()
def ledger_group():
    """Manage ledger transactions."""
    pass


@ledger_group.command("add")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--date", "date_str", required=True, help="Transaction date")
@click.option("--amount", "amount_str", required=True, help="Signed amount, e.g. -4.50")
@click.option("--description", default="", help="Description")
@click.option("--currency", help="Currency code (defaults to the account's currency)")
@click.option("--category", help="Category reference")
@click.pass_context
def add_transaction(
    ctx,
    account: str,
    date_str: str,
    amount_str: str,
    description: str,
    currency: str | None,
    category: str | None,
):
    """Record a ledger transaction by hand.

    Examples:
        ledgerrec ledger add --account Checking --date 2026-01-10 --amount -50.00 --description "Coffee Shop"
    """
    service = LedgerService(get_db(ctx), get_tenant(ctx))
    account_id = resolve_account_or_exit(ctx, account)

    try:
        transaction_id = service.create_transaction(
            account_id=account_id,
            date=parse_date(date_str),
            amount=parse_amount(amount_str),
            description=description,
            currency=currency,
            category_id=category,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created transaction {transaction_id}")


@ledger_group.command("list")
@click.option("--account", help="Account name or ID")
@click.option("--start", "start_str", help="First date (inclusive)")
@click.option("--end", "end_str", help="Last date (inclusive)")
@click.pass_context
def list_transactions(ctx, account: str | None, start_str: str | None, end_str: str | None):
    """List ledger transactions."""
    service = LedgerService(get_db(ctx), get_tenant(ctx))
    account_id = resolve_account_or_exit(ctx, account) if account is not None else None

    try:
        start = parse_date(start_str) if start_str else None
        end = parse_date(end_str) if end_str else None
        transactions = service.list_transactions(account_id=account_id, start_date=start, end_date=end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not transactions:
        click.echo("No transactions found.")
        return

    for txn in transactions:
        click.echo(
            f"{txn.id:5d} | {txn.date} | {format_amount(txn.amount):>12s} {txn.currency} | "
            f"{txn.source.value:9s} | {txn.description}"
        )


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(ledger_group, name="ledger")
