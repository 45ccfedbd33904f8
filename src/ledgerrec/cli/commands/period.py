"""Period lock commands."""

import click
from ledgerrec.domain.entities import PeriodStatus
from ledgerrec.utils.date_parser import parse_period_arg
from ledgerrec.cli.context import reconciliation_service, resolve_account_or_exit
from ledgerrec.cli.error_handling import handle_domain_error


def _echo_status(status: PeriodStatus) -> None:
    click.echo(f"Period {status.period} (account {status.account_id}): {status.status.value}")
    click.echo(f"  Total: {status.total_count}")
    click.echo(f"  Matched: {status.matched_count}")
    click.echo(f"  Suggested: {status.suggested_count}")
    click.echo(f"  Unmatched: {status.unmatched_count}")
    click.echo(f"  Reconciled: {status.reconciliation_percent}%")
    if status.is_locked:
        click.echo(f"  Locked by {status.locked_by} at {status.locked_at}")
    elif status.unlocked_by:
        click.echo(f"  Unlocked by {status.unlocked_by} at {status.unlocked_at}")


def _period_options(func):
    func = click.option(
        "--period", required=True, help="Period (YYYY-MM, 'this-month', 'last-month')"
    )(func)
    func = click.option("--account", required=True, help="Account name or ID")(func)
    return func


@click.group()
def period_group():
    """Inspect and lock reconciliation periods."""
    pass


@period_group.command("status")
@_period_options
@click.pass_context
def status(ctx, account: str, period: str):
    """Show the reconciliation status of an account period."""
    service = reconciliation_service(ctx)
    account_id = resolve_account_or_exit(ctx, account)

    try:
        result = service.get_reconciliation_status(account_id, parse_period_arg(period))
    except ValueError as e:
        handle_domain_error(ctx, e)
    _echo_status(result)


@period_group.command("lock")
@_period_options
@click.pass_context
def lock(ctx, account: str, period: str):
    """Lock a fully reconciled account period."""
    service = reconciliation_service(ctx)
    account_id = resolve_account_or_exit(ctx, account)

    try:
        result = service.lock_period(account_id, parse_period_arg(period))
    except ValueError as e:
        handle_domain_error(ctx, e)
    _echo_status(result)


@period_group.command("unlock")
@_period_options
@click.pass_context
def unlock(ctx, account: str, period: str):
    """Unlock an account period."""
    service = reconciliation_service(ctx)
    account_id = resolve_account_or_exit(ctx, account)

    try:
        result = service.unlock_period(account_id, parse_period_arg(period))
    except ValueError as e:
        handle_domain_error(ctx, e)
    _echo_status(result)


def register_commands(cli):
    """Register period commands with main CLI."""
    cli.add_command(period_group, name="period")
