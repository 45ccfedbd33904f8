"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist (or belongs to another tenant)."""


class ConflictError(DomainError):
    """Domain conflict, such as a ledger transaction that is already claimed."""


class PeriodLockedError(DomainError):
    """Mutation attempted on a locked reconciliation period."""


class UnreconciledPeriodError(PeriodLockedError):
    """Lock refused because the period still has open feed transactions."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def feed_transaction_not_found(feed_id: int) -> str:
    """Return message for missing bank feed transaction."""
    return f"Bank feed transaction {feed_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing ledger transaction."""
    return f"Transaction {transaction_id} not found"


def match_not_found(match_id: int) -> str:
    """Return message for missing match."""
    return f"Match {match_id} not found"


def transfer_not_found(transfer_id: int) -> str:
    """Return message for missing transfer."""
    return f"Transfer {transfer_id} not found"


def feed_already_matched(feed_id: int) -> str:
    """Return message when a feed transaction already has a confirmed match."""
    return f"Bank feed transaction {feed_id} is already matched"


def transaction_already_matched(transaction_id: int) -> str:
    """Return message when a ledger transaction is claimed by another match."""
    return f"Transaction {transaction_id} is already matched"


def period_locked(account_id: int, period: str) -> str:
    """Return message for a mutation against a locked period."""
    return f"Period {period} is locked for account {account_id}"


def period_not_reconciled(
    account_id: int, period: str, suggested_count: int, unmatched_count: int
) -> str:
    """Return message when a lock is refused because of open items."""
    parts = []
    if suggested_count > 0:
        parts.append(f"{suggested_count} suggested")
    if unmatched_count > 0:
        parts.append(f"{unmatched_count} unmatched")
    return (
        f"Cannot lock period {period} for account {account_id}: "
        f"{' and '.join(parts)} feed transaction{'s' if suggested_count + unmatched_count != 1 else ''} "
        "remaining. Confirm or resolve them first."
    )
