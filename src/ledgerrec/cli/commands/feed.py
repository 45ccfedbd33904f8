"""Bank feed commands."""

import click
from ledgerrec.domain.errors import DomainError
from ledgerrec.domain.feed_import import FeedImportService
from ledgerrec.utils.amount_parser import format_amount, parse_amount
from ledgerrec.utils.date_parser import parse_date, parse_period_arg
from ledgerrec.cli.context import get_db, get_tenant, resolve_account_or_exit
from ledgerrec.cli.error_handling import handle_domain_error


@click.group()
def feed_group():
    """Manage bank feed transactions."""
    pass


@feed_group.command("import")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--account", required=True, help="Account name or ID")
@click.pass_context
def import_feed(ctx, csv_file: str, account: str):
    """Import bank feed transactions from a CSV file.

    The file needs external_id (or id), date and amount columns; description
    and currency are optional. Rows already imported are skipped.
    """
    service = FeedImportService(get_db(ctx), get_tenant(ctx))
    account_id = resolve_account_or_exit(ctx, account)

    try:
        result = service.import_csv(csv_file_path=csv_file, account_id=account_id)
    except (ValueError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)

    click.echo("\nImport complete:")
    click.echo(f"  Imported: {result['imported']} feed transactions")
    click.echo(f"  Skipped: {result['skipped']} duplicates")
    if result["errors"]:
        click.echo(f"  Errors: {len(result['errors'])}")
        for error in result["errors"]:
            click.echo(f"    {error}", err=True)


@feed_group.command("add")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--external-id", required=True, help="Bank-side transaction identifier")
@click.option("--date", "date_str", required=True, help="Booking date")
@click.option("--amount", "amount_str", required=True, help="Signed amount, e.g. -4.50")
@click.option("--description", default="", help="Bank description")
@click.option("--currency", help="Currency code (defaults to the account's currency)")
@click.pass_context
def add_feed(
    ctx,
    account: str,
    external_id: str,
    date_str: str,
    amount_str: str,
    description: str,
    currency: str | None,
):
    """Add a single bank feed transaction."""
    service = FeedImportService(get_db(ctx), get_tenant(ctx))
    account_id = resolve_account_or_exit(ctx, account)

    try:
        feed_id = service.add_feed_transaction(
            account_id=account_id,
            external_id=external_id,
            date=parse_date(date_str),
            amount=parse_amount(amount_str),
            description=description,
            currency=currency,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added feed transaction {feed_id}")


@feed_group.command("list")
@click.option("--account", help="Account name or ID")
@click.option("--period", help="Period (YYYY-MM, 'this-month', 'last-month')")
@click.pass_context
def list_feed(ctx, account: str | None, period: str | None):
    """List bank feed transactions with their reconciliation status."""
    service = FeedImportService(get_db(ctx), get_tenant(ctx))
    account_id = resolve_account_or_exit(ctx, account) if account is not None else None

    try:
        period_key = parse_period_arg(period) if period is not None else None
        rows = service.list_feed_transactions(account_id=account_id, period=period_key)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not rows:
        click.echo("No feed transactions found.")
        return

    for feed, status in rows:
        click.echo(
            f"{feed.id:5d} | {feed.date} | {format_amount(feed.amount):>12s} {feed.currency} | "
            f"{status.value:9s} | {feed.description}"
        )


def register_commands(cli):
    """Register feed commands with main CLI."""
    cli.add_command(feed_group, name="feed")
