"""Insights command."""

import click
from ledgerrec.domain.insights import ReconciliationInsightService
from ledgerrec.cli.context import get_db, get_tenant


@click.command("insights")
@click.pass_context
def insights(ctx):
    """Show accounts whose bank feed is poorly reconciled."""
    service = ReconciliationInsightService(get_db(ctx))

    gaps = service.reconciliation_gaps(get_tenant(ctx))
    if not gaps:
        click.echo("All accounts are at least 80% reconciled.")
        return

    for gap in gaps:
        click.echo(
            f"[{gap.priority}] {gap.account_name}: {gap.reconciliation_percent}% reconciled "
            f"({gap.unmatched} of {gap.total_bank_feed} feed transactions open)"
        )


def register_commands(cli):
    """Register insights command with main CLI."""
    cli.add_command(insights)
