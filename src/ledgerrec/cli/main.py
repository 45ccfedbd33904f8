"""Main CLI entry point."""

import logging

import click
from ledgerrec.config import MatchingConfig
from ledgerrec.database.factories import create_sqlite_database
from ledgerrec.domain.errors import DomainError
from ledgerrec.cli.error_handling import handle_domain_error

# Import and register all commands at module level
from ledgerrec.cli.commands import (
    account,
    feed,
    insights,
    ledger,
    match,
    period,
    transfer,
)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def configure_logging(level: str) -> None:
    """Send ledgerrec log records to stderr at the given level."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    package_logger = logging.getLogger("ledgerrec")
    package_logger.handlers[:] = [handler]
    package_logger.setLevel(level.upper())
    package_logger.propagate = False


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERREC_DB_PATH environment variable)",
    envvar="LEDGERREC_DB_PATH",
)
@click.option(
    "--tenant",
    default="default",
    show_default=True,
    envvar="LEDGERREC_TENANT",
    help="Tenant whose accounts are reconciled",
)
@click.option(
    "--user",
    default="cli",
    show_default=True,
    envvar="LEDGERREC_USER",
    help="Acting user recorded on confirmations and locks",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="LEDGERREC_LOG_LEVEL",
    help="Log level for messages on stderr",
)
@click.pass_context
def cli(ctx, db_path: str | None, tenant: str, user: str, log_level: str):
    """Ledgerrec - Bank transaction reconciliation.

    Match bank feed transactions against ledger transactions, detect
    transfers between accounts and lock reconciled months.
    """
    ctx.ensure_object(dict)
    configure_logging(log_level)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            config = MatchingConfig.from_env()
        except DomainError as e:
            handle_domain_error(ctx, e)

        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)
        ctx.obj["db"] = db
        ctx.obj["tenant"] = tenant
        ctx.obj["user"] = user
        ctx.obj["config"] = config


# Register all commands
account.register_commands(cli)
feed.register_commands(cli)
ledger.register_commands(cli)
match.register_commands(cli)
transfer.register_commands(cli)
period.register_commands(cli)
insights.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
