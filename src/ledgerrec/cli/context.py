"""CLI helpers for building services and resolving accounts."""

from __future__ import annotations

import click
from ledgerrec.database.base import Database
from ledgerrec.domain.account import AccountService
from ledgerrec.domain.errors import DomainError
from ledgerrec.domain.reconciliation import ReconciliationService
from ledgerrec.utils.account_resolver import resolve_account
from ledgerrec.cli.error_handling import handle_domain_error


def get_db(ctx: click.Context) -> Database:
    return ctx.obj["db"]


def get_tenant(ctx: click.Context) -> str:
    return ctx.obj["tenant"]


def reconciliation_service(ctx: click.Context) -> ReconciliationService:
    """Build the reconciliation service for the invoking tenant and user."""
    return ReconciliationService(
        ctx.obj["db"],
        tenant_id=ctx.obj["tenant"],
        user_id=ctx.obj["user"],
        config=ctx.obj["config"],
    )


def resolve_account_or_exit(ctx: click.Context, account: str | int) -> int:
    """Resolve account name or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    service = AccountService(get_db(ctx), get_tenant(ctx))
    try:
        return resolve_account(service, account)
    except DomainError as exc:
        handle_domain_error(ctx, exc)
