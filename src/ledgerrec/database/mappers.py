"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, making it easy to change when
the database schema changes.
"""

from ledgerrec.domain import entities as domain
from ledgerrec.database.models import (
    Account as ORMAccount,
    BankFeedTransaction as ORMBankFeedTransaction,
    Transaction as ORMTransaction,
    TransactionMatch as ORMTransactionMatch,
    DetectedTransfer as ORMDetectedTransfer,
    PeriodLock as ORMPeriodLock,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        tenant_id=orm_account.tenant_id,
        name=orm_account.name,
        institution=orm_account.institution,
        currency=orm_account.currency,
        created_at=orm_account.created_at,
    )


def feed_transaction_to_domain(orm_feed: ORMBankFeedTransaction) -> domain.BankFeedTransaction:
    """Convert SQLAlchemy BankFeedTransaction model to domain entity."""
    return domain.BankFeedTransaction(
        id=orm_feed.id,
        account_id=orm_feed.account_id,
        external_id=orm_feed.external_id,
        date=orm_feed.date,
        description=orm_feed.description or "",
        amount=orm_feed.amount,
        currency=orm_feed.currency,
        period=orm_feed.period,
        created_at=orm_feed.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        account_id=orm_transaction.account_id,
        date=orm_transaction.date,
        description=orm_transaction.description or "",
        amount=orm_transaction.amount,
        currency=orm_transaction.currency,
        category_id=orm_transaction.category_id,
        source=domain.LedgerSource(orm_transaction.source),
        linked_transaction_id=orm_transaction.linked_transaction_id,
        created_at=orm_transaction.created_at,
    )


def match_to_domain(orm_match: ORMTransactionMatch) -> domain.TransactionMatch:
    """Convert SQLAlchemy TransactionMatch model to domain entity."""
    return domain.TransactionMatch(
        id=orm_match.id,
        bank_feed_transaction_id=orm_match.bank_feed_transaction_id,
        transaction_id=orm_match.transaction_id,
        status=domain.MatchStatus(orm_match.status),
        confidence=orm_match.confidence,
        reasons=tuple(orm_match.reasons or ()),
        matched_at=orm_match.matched_at,
        matched_by=orm_match.matched_by,
        state=domain.RecordState(orm_match.state),
        created_at=orm_match.created_at,
        deleted_at=orm_match.deleted_at,
        deleted_by=orm_match.deleted_by,
    )


def transfer_to_domain(orm_transfer: ORMDetectedTransfer) -> domain.DetectedTransfer:
    """Convert SQLAlchemy DetectedTransfer model to domain entity."""
    return domain.DetectedTransfer(
        id=orm_transfer.id,
        from_feed_id=orm_transfer.from_feed_id,
        to_feed_id=orm_transfer.to_feed_id,
        amount=orm_transfer.amount,
        currency=orm_transfer.currency,
        status=domain.TransferStatus(orm_transfer.status),
        date_distance=orm_transfer.date_distance,
        created_at=orm_transfer.created_at,
        resolved_at=orm_transfer.resolved_at,
        resolved_by=orm_transfer.resolved_by,
        from_transaction_id=orm_transfer.from_transaction_id,
        to_transaction_id=orm_transfer.to_transaction_id,
    )


def period_lock_to_domain(orm_lock: ORMPeriodLock) -> domain.PeriodLock:
    """Convert SQLAlchemy PeriodLock model to domain entity."""
    return domain.PeriodLock(
        account_id=orm_lock.account_id,
        period=orm_lock.period,
        status=domain.LockStatus(orm_lock.status),
        locked_at=orm_lock.locked_at,
        locked_by=orm_lock.locked_by,
        unlocked_at=orm_lock.unlocked_at,
        unlocked_by=orm_lock.unlocked_by,
    )
