"""Reconciliation API.

ReconciliationService is the boundary used by the CLI and any other
transport. It binds a tenant and an acting user, checks that every id it is
given belongs to that tenant, and delegates to the match engine, the
transfer detector and the period lock service.
"""

from typing import Iterable, Optional
from datetime import date

from ledgerrec.config import MatchingConfig
from ledgerrec.database.base import Database
from ledgerrec.domain import errors
from ledgerrec.domain.account import AccountService
from ledgerrec.domain.entities import (
    BankFeedTransaction,
    BulkItemResult,
    DetectedTransfer,
    MatchRunResult,
    MatchStatus,
    MatchSuggestion,
    PeriodStatus,
    Transaction,
    TransactionMatch,
    TransferStatus,
)
from ledgerrec.domain.matching import MatchEngine, run_bulk
from ledgerrec.domain.period_lock import PeriodLockService
from ledgerrec.domain.posting import DatabaseLedgerPoster, LedgerPoster
from ledgerrec.domain.transfers import RateProvider, TransferDetector


class ReconciliationService:
    """Tenant-scoped reconciliation operations for one acting user."""

    def __init__(
        self,
        db: Database,
        tenant_id: str,
        user_id: str,
        config: Optional[MatchingConfig] = None,
        poster: Optional[LedgerPoster] = None,
        rate_provider: Optional[RateProvider] = None,
    ):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            tenant_id: Tenant the caller acts within
            user_id: Acting user, recorded on confirmations, unmatches and locks
            config: Matching configuration (defaults to MatchingConfig())
            poster: Ledger poster (defaults to DatabaseLedgerPoster)
            rate_provider: Optional FX rate lookup for transfer detection
        """
        self.db = db
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.config = config or MatchingConfig()
        self.poster = poster or DatabaseLedgerPoster(db)

        self.accounts = AccountService(db, tenant_id)
        self.locks = PeriodLockService(db)
        self.engine = MatchEngine(db, self.config, self.poster, self.locks)
        self.transfers = TransferDetector(db, self.config, rate_provider, self.poster, self.locks)

    # Tenant scoping: ids owned by another tenant are reported as not found
    def _require_feed(self, feed_id: int) -> BankFeedTransaction:
        feed = self.db.get_feed_transaction(feed_id)
        if feed is None or self.accounts.get_account(feed.account_id) is None:
            raise errors.NotFoundError(errors.feed_transaction_not_found(feed_id))
        return feed

    def _require_transaction(self, transaction_id: int) -> Transaction:
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None or self.accounts.get_account(transaction.account_id) is None:
            raise errors.NotFoundError(errors.transaction_not_found(transaction_id))
        return transaction

    def _require_match(self, match_id: int) -> TransactionMatch:
        match = self.db.get_match(match_id)
        if match is None:
            raise errors.NotFoundError(errors.match_not_found(match_id))
        feed = self.db.get_feed_transaction(match.bank_feed_transaction_id)
        if feed is None or self.accounts.get_account(feed.account_id) is None:
            raise errors.NotFoundError(errors.match_not_found(match_id))
        return match

    def _require_transfer(self, transfer_id: int) -> DetectedTransfer:
        transfer = self.db.get_transfer(transfer_id)
        if transfer is None:
            raise errors.NotFoundError(errors.transfer_not_found(transfer_id))
        feed = self.db.get_feed_transaction(transfer.from_feed_id)
        if feed is None or self.accounts.get_account(feed.account_id) is None:
            raise errors.NotFoundError(errors.transfer_not_found(transfer_id))
        return transfer

    # Matches
    def get_suggestions(self, feed_id: int, limit: Optional[int] = None) -> list[MatchSuggestion]:
        """Ranked match suggestions for a feed transaction, best first."""
        self._require_feed(feed_id)
        return self.engine.suggestions(feed_id, limit)

    def create_match(self, feed_id: int, transaction_id: int) -> TransactionMatch:
        """Manually match a feed transaction to a ledger transaction."""
        self._require_feed(feed_id)
        self._require_transaction(transaction_id)
        return self.engine.create_match(feed_id, transaction_id, self.user_id)

    def confirm_match(self, match_id: int) -> TransactionMatch:
        """Confirm a suggested match."""
        self._require_match(match_id)
        return self.engine.confirm(match_id, self.user_id)

    def unmatch(self, match_id: int) -> None:
        """Remove an active match."""
        self._require_match(match_id)
        self.engine.unmatch(match_id, self.user_id)

    def bulk_confirm_matches(self, match_ids: Iterable[int]) -> list[BulkItemResult]:
        """Confirm several matches; each item succeeds or fails on its own."""

        def confirm_one(match_id: int) -> BulkItemResult:
            return BulkItemResult(id=match_id, success=True, match=self.confirm_match(match_id))

        return run_bulk(match_ids, confirm_one)

    def bulk_create_transactions(self, feed_ids: Iterable[int]) -> list[BulkItemResult]:
        """Post a ledger transaction for each feed and match the two."""

        def post_one(feed_id: int) -> BulkItemResult:
            self._require_feed(feed_id)
            return self.engine.post_feed(feed_id, self.user_id)

        return run_bulk(feed_ids, post_one)

    def run_matching(self, account_id: int, period: str) -> MatchRunResult:
        """Generate suggestions for an account period."""
        self.accounts.require_account(account_id)
        return self.engine.run(account_id, period)

    def list_matches(
        self, account_id: Optional[int] = None, status: Optional[MatchStatus] = None
    ) -> list[TransactionMatch]:
        """List active matches of the tenant."""
        if account_id is not None:
            self.accounts.require_account(account_id)
        return self.db.list_matches(account_id=account_id, status=status, tenant_id=self.tenant_id)

    # Periods
    def get_reconciliation_status(self, account_id: int, period: str) -> PeriodStatus:
        """Derived reconciliation status of an account period."""
        self.accounts.require_account(account_id)
        return self.locks.status(account_id, period)

    def lock_period(self, account_id: int, period: str) -> PeriodStatus:
        """Lock a fully reconciled account period."""
        self.accounts.require_account(account_id)
        return self.locks.lock(account_id, period, self.user_id)

    def unlock_period(self, account_id: int, period: str) -> PeriodStatus:
        """Unlock an account period."""
        self.accounts.require_account(account_id)
        return self.locks.unlock(account_id, period, self.user_id)

    # Transfers
    def detect_transfers(self, start: date, end: date) -> list[DetectedTransfer]:
        """Propose transfers between the tenant's accounts."""
        return self.transfers.detect(self.tenant_id, start, end)

    def create_transfer(self, from_feed_id: int, to_feed_id: int) -> DetectedTransfer:
        """Manually pair two feed transactions as a transfer."""
        self._require_feed(from_feed_id)
        self._require_feed(to_feed_id)
        return self.transfers.create_transfer(from_feed_id, to_feed_id)

    def confirm_transfer(self, transfer_id: int) -> DetectedTransfer:
        """Confirm a transfer and post its ledger legs."""
        self._require_transfer(transfer_id)
        return self.transfers.confirm(transfer_id, self.user_id)

    def reject_transfer(self, transfer_id: int) -> DetectedTransfer:
        """Reject a transfer."""
        self._require_transfer(transfer_id)
        return self.transfers.reject(transfer_id, self.user_id)

    def list_transfers(self, status: Optional[TransferStatus] = None) -> list[DetectedTransfer]:
        """List the tenant's transfers."""
        return self.transfers.list(self.tenant_id, status)
