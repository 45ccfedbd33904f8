"""Transfer commands."""

import click
from ledgerrec.domain.entities import DetectedTransfer, TransferStatus
from ledgerrec.utils.amount_parser import format_amount
from ledgerrec.utils.date_parser import parse_date
from ledgerrec.cli.context import reconciliation_service
from ledgerrec.cli.error_handling import handle_domain_error


def _describe(transfer: DetectedTransfer) -> str:
    return (
        f"Transfer {transfer.id}: feed {transfer.from_feed_id} -> feed {transfer.to_feed_id} "
        f"{format_amount(transfer.amount)} {transfer.currency} [{transfer.status.value}]"
    )


@click.group()
def transfer_group():
    """Detect and resolve transfers between accounts."""
    pass


@transfer_group.command("detect")
@click.option("--start", "start_str", required=True, help="First feed date (inclusive)")
@click.option("--end", "end_str", required=True, help="Last feed date (inclusive)")
@click.pass_context
def detect(ctx, start_str: str, end_str: str):
    """Propose transfers between accounts."""
    service = reconciliation_service(ctx)

    try:
        transfers = service.detect_transfers(parse_date(start_str), parse_date(end_str))
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Detected {len(transfers)} transfer(s)")
    for transfer in transfers:
        click.echo(f"  {_describe(transfer)}")


@transfer_group.command("create")
@click.argument("from_feed_id", type=int)
@click.argument("to_feed_id", type=int)
@click.pass_context
def create(ctx, from_feed_id: int, to_feed_id: int):
    """Pair two feed transactions as a transfer."""
    service = reconciliation_service(ctx)

    try:
        transfer = service.create_transfer(from_feed_id, to_feed_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(_describe(transfer))


@transfer_group.command("confirm")
@click.argument("transfer_id", type=int)
@click.pass_context
def confirm(ctx, transfer_id: int):
    """Confirm a transfer and post its ledger legs."""
    service = reconciliation_service(ctx)

    try:
        transfer = service.confirm_transfer(transfer_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(_describe(transfer))


@transfer_group.command("reject")
@click.argument("transfer_id", type=int)
@click.pass_context
def reject(ctx, transfer_id: int):
    """Reject a transfer."""
    service = reconciliation_service(ctx)

    try:
        transfer = service.reject_transfer(transfer_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(_describe(transfer))


@transfer_group.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in TransferStatus]),
    help="Only show transfers with this status",
)
@click.pass_context
def list_transfers(ctx, status: str | None):
    """List transfers."""
    service = reconciliation_service(ctx)

    transfers = service.list_transfers(TransferStatus(status) if status else None)
    if not transfers:
        click.echo("No transfers found.")
        return

    for transfer in transfers:
        click.echo(_describe(transfer))


def register_commands(cli):
    """Register transfer commands with main CLI."""
    cli.add_command(transfer_group, name="transfer")
