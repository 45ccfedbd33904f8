"""Account management commands."""

import click
from ledgerrec.domain.account import AccountService
from ledgerrec.domain.errors import DomainError
from ledgerrec.cli.context import get_db, get_tenant
from ledgerrec.cli.error_handling import handle_domain_error


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--institution", help="Bank or institution (defaults to account name)")
@click.option("--currency", default="USD", show_default=True, help="ISO currency code")
@click.pass_context
def create_account(ctx, name: str, institution: str | None, currency: str):
    """Create a new account.

    Examples:
        ledgerrec account create "Checking" --institution "Chase"
        ledgerrec account create "Euro Savings" --currency EUR
    """
    service = AccountService(get_db(ctx), get_tenant(ctx))
    institution = institution if institution is not None else name

    try:
        account_id = service.create_account(name=name, institution=institution, currency=currency)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created account '{name}' (ID: {account_id})")


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts."""
    service = AccountService(get_db(ctx), get_tenant(ctx))

    accounts = service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 60)
    for acc in accounts:
        click.echo(f"ID: {acc.id:3d} | {acc.name:20s} | {acc.currency} | {acc.institution}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
