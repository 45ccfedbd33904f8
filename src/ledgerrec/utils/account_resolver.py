"""Utility for resolving account names to IDs."""

from ledgerrec.domain.account import AccountService
from ledgerrec.domain.errors import NotFoundError


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve account name or ID to account ID.

    Args:
        account_service: AccountService instance scoped to the caller's tenant
        account: Account name (str) or ID (int or string representation of int)

    Returns:
        Account ID

    Raises:
        NotFoundError: If account is not found in the tenant
    """
    if isinstance(account, int):
        return account_service.require_account(account).id

    # Try to parse as integer (handles string IDs like "1")
    try:
        account_id = int(account)
    except (ValueError, TypeError):
        account_id = None
    if account_id is not None:
        return account_service.require_account(account_id).id

    for acc in account_service.list_accounts():
        if acc.name == account:
            return acc.id

    raise NotFoundError(f"Account '{account}' not found")
