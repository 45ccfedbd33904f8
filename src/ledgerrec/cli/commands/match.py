"""Match commands."""

import click
from ledgerrec.domain.entities import BulkItemResult, MatchStatus, TransactionMatch
from ledgerrec.utils.amount_parser import format_amount
from ledgerrec.utils.date_parser import parse_period_arg
from ledgerrec.cli.context import reconciliation_service, resolve_account_or_exit
from ledgerrec.cli.error_handling import handle_domain_error


def _describe(match: TransactionMatch) -> str:
    target = match.transaction_id if match.transaction_id is not None else "-"
    return (
        f"Match {match.id}: feed {match.bank_feed_transaction_id} -> transaction {target} "
        f"[{match.status.value}, {match.confidence:.2f}]"
    )


def _echo_bulk(results: list[BulkItemResult]) -> int:
    failures = 0
    for item in results:
        if item.success:
            click.echo(f"  {item.id}: ok")
        else:
            failures += 1
            click.echo(f"  {item.id}: {item.error_type}: {item.error}", err=True)
    click.echo(f"{len(results) - failures} succeeded, {failures} failed")
    return failures


@click.group()
def match_group():
    """Match bank feed transactions to ledger transactions."""
    pass


@match_group.command("run")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--period", required=True, help="Period (YYYY-MM, 'this-month', 'last-month')")
@click.pass_context
def run_matching(ctx, account: str, period: str):
    """Generate match suggestions for an account period."""
    service = reconciliation_service(ctx)
    account_id = resolve_account_or_exit(ctx, account)

    try:
        result = service.run_matching(account_id, parse_period_arg(period))
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Processed {result.processed} feed transaction(s) for {result.period}:")
    click.echo(f"  Matched: {result.matched}")
    click.echo(f"  Suggested: {result.suggested}")
    click.echo(f"  Unmatched: {result.unmatched}")


@match_group.command("suggest")
@click.argument("feed_id", type=int)
@click.option("--limit", type=int, help="Maximum number of suggestions")
@click.pass_context
def suggest(ctx, feed_id: int, limit: int | None):
    """Show ranked ledger candidates for a feed transaction."""
    service = reconciliation_service(ctx)

    try:
        suggestions = service.get_suggestions(feed_id, limit)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not suggestions:
        click.echo("No suggestions found.")
        return

    for s in suggestions:
        txn = s.transaction
        click.echo(
            f"{s.transaction_id:5d} | {s.confidence:.2f} | {txn.date} | "
            f"{format_amount(txn.amount):>12s} | {txn.description}"
        )
        click.echo(f"      {', '.join(s.reasons)}")


@match_group.command("create")
@click.argument("feed_id", type=int)
@click.argument("transaction_id", type=int)
@click.pass_context
def create_match(ctx, feed_id: int, transaction_id: int):
    """Manually match a feed transaction to a ledger transaction."""
    service = reconciliation_service(ctx)

    try:
        match = service.create_match(feed_id, transaction_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(_describe(match))


@match_group.command("confirm")
@click.argument("match_ids", type=int, nargs=-1, required=True)
@click.pass_context
def confirm(ctx, match_ids: tuple[int, ...]):
    """Confirm one or more suggested matches.

    With several ids each match is confirmed independently and the command
    fails only if at least one of them failed.
    """
    service = reconciliation_service(ctx)

    if len(match_ids) == 1:
        try:
            match = service.confirm_match(match_ids[0])
        except ValueError as e:
            handle_domain_error(ctx, e)
        click.echo(_describe(match))
        return

    if _echo_bulk(service.bulk_confirm_matches(match_ids)):
        ctx.exit(1)


@match_group.command("unmatch")
@click.argument("match_id", type=int)
@click.pass_context
def unmatch(ctx, match_id: int):
    """Remove a match, returning its feed transaction to unmatched."""
    service = reconciliation_service(ctx)

    try:
        service.unmatch(match_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Removed match {match_id}")


@match_group.command("post")
@click.argument("feed_ids", type=int, nargs=-1, required=True)
@click.pass_context
def post(ctx, feed_ids: tuple[int, ...]):
    """Create ledger transactions from feed transactions and match them."""
    service = reconciliation_service(ctx)

    results = service.bulk_create_transactions(feed_ids)
    for item in results:
        if item.success:
            click.echo(f"Feed {item.id} -> transaction {item.transaction.id}")
    failures = [item for item in results if not item.success]
    for item in failures:
        click.echo(f"Feed {item.id}: {item.error_type}: {item.error}", err=True)
    if failures:
        ctx.exit(1)


@match_group.command("list")
@click.option("--account", help="Account name or ID")
@click.option(
    "--status",
    type=click.Choice([s.value for s in MatchStatus]),
    help="Only show matches with this status",
)
@click.pass_context
def list_matches(ctx, account: str | None, status: str | None):
    """List active matches."""
    service = reconciliation_service(ctx)
    account_id = resolve_account_or_exit(ctx, account) if account is not None else None

    matches = service.list_matches(
        account_id=account_id, status=MatchStatus(status) if status else None
    )
    if not matches:
        click.echo("No matches found.")
        return

    for match in matches:
        click.echo(_describe(match))


def register_commands(cli):
    """Register match commands with main CLI."""
    cli.add_command(match_group, name="match")
