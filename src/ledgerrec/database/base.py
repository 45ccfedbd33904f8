"""Abstract database interface.

Every mutating match, transfer and lock operation is a single atomic unit at
this boundary: implementations must perform their precondition checks and
their writes in one database transaction (conditional writes and unique
constraints), never as a read in one call followed by a write in another.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
from datetime import date, datetime

from ledgerrec.domain.entities import (
    Account,
    BankFeedTransaction,
    DetectedTransfer,
    LedgerSource,
    MatchStatus,
    PeriodLock,
    ReconciliationCounts,
    Transaction,
    TransactionMatch,
    TransferStatus,
)


class Database(ABC):
    """Abstract database interface for ledgerrec."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Discard writes made with commit=False that were not committed yet."""
        pass

    # Account operations
    @abstractmethod
    def create_account(self, tenant_id: str, name: str, institution: str, currency: str) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self, tenant_id: str) -> list[Account]:
        """List all accounts of a tenant."""
        pass

    # Bank feed operations
    @abstractmethod
    def create_feed_transaction(
        self,
        account_id: int,
        external_id: str,
        date: date,
        description: str,
        amount: int,
        currency: str,
    ) -> int:
        """Create a bank feed transaction. Returns feed transaction ID.

        Raises:
            ConflictError: If external_id already exists for the account
        """
        pass

    @abstractmethod
    def feed_transaction_exists(self, account_id: int, external_id: str) -> bool:
        """Check if a feed transaction with given external_id exists for account."""
        pass

    @abstractmethod
    def get_feed_transaction(self, feed_id: int) -> Optional[BankFeedTransaction]:
        """Get bank feed transaction by ID."""
        pass

    @abstractmethod
    def list_feed_transactions(
        self,
        account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        period: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> list[BankFeedTransaction]:
        """List feed transactions ordered by date, then ID."""
        pass

    @abstractmethod
    def get_feed_statuses(self, feed_ids: Sequence[int]) -> dict[int, MatchStatus]:
        """Derive the reconciliation status of each feed transaction.

        A feed is MATCHED when it has an active matched match or belongs to a
        confirmed transfer, SUGGESTED when its active match is suggested, and
        UNMATCHED otherwise.
        """
        pass

    @abstractmethod
    def count_feed_statuses(self, account_id: int, period: Optional[str] = None) -> ReconciliationCounts:
        """Count an account's feed transactions by derived status."""
        pass

    # Ledger transaction operations
    @abstractmethod
    def create_transaction(
        self,
        account_id: int,
        date: date,
        description: str,
        amount: int,
        currency: str,
        category_id: Optional[str] = None,
        source: LedgerSource = LedgerSource.MANUAL,
        commit: bool = True,
    ) -> int:
        """Create a ledger transaction. Returns transaction ID.

        With commit=False the write joins the next committing operation
        instead of being committed on its own.
        """
        pass

    @abstractmethod
    def link_transactions(self, first_id: int, second_id: int, commit: bool = True) -> None:
        """Link two ledger transactions to each other (transfer legs)."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get ledger transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        tenant_id: Optional[str] = None,
    ) -> list[Transaction]:
        """List ledger transactions ordered by date, then ID."""
        pass

    @abstractmethod
    def list_claimed_transaction_ids(self, account_id: Optional[int] = None) -> set[int]:
        """IDs of ledger transactions targeted by an active matched match."""
        pass

    # Match operations
    @abstractmethod
    def get_match(self, match_id: int) -> Optional[TransactionMatch]:
        """Get match by ID, including soft-deleted rows."""
        pass

    @abstractmethod
    def get_active_match(self, feed_id: int) -> Optional[TransactionMatch]:
        """Get the active match of a feed transaction, if any."""
        pass

    @abstractmethod
    def list_matches(
        self,
        account_id: Optional[int] = None,
        status: Optional[MatchStatus] = None,
        tenant_id: Optional[str] = None,
        include_deleted: bool = False,
    ) -> list[TransactionMatch]:
        """List matches with optional filters, ordered by ID."""
        pass

    @abstractmethod
    def save_match_result(
        self,
        feed_id: int,
        status: MatchStatus,
        transaction_id: Optional[int],
        confidence: float,
        reasons: Sequence[str],
    ) -> TransactionMatch:
        """Create or refresh the active suggested/unmatched row of a feed.

        Raises:
            ConflictError: If the feed already has an active matched row
            PeriodLockedError: If the feed's period is locked
        """
        pass

    @abstractmethod
    def create_confirmed_match(
        self,
        feed_id: int,
        transaction_id: int,
        confidence: float,
        reasons: Sequence[str],
        matched_by: str,
        matched_at: datetime,
    ) -> TransactionMatch:
        """Create a matched row, replacing any active suggested/unmatched row.

        Raises:
            ConflictError: If the feed or the transaction is already matched,
                or the feed belongs to a confirmed transfer
            PeriodLockedError: If the feed's period is locked
        """
        pass

    @abstractmethod
    def confirm_match(self, match_id: int, matched_by: str, matched_at: datetime) -> TransactionMatch:
        """Move an active suggested match to matched.

        Raises:
            NotFoundError: If no active match with this ID exists
            ConflictError: If the match is not suggested, the target
                transaction is already claimed, or the feed belongs to a
                confirmed transfer
            PeriodLockedError: If the feed's period is locked
        """
        pass

    @abstractmethod
    def delete_match(self, match_id: int, deleted_by: str, deleted_at: datetime) -> TransactionMatch:
        """Soft-delete an active match.

        Raises:
            NotFoundError: If no active match with this ID exists
            PeriodLockedError: If the feed's period is locked
        """
        pass

    # Transfer operations
    @abstractmethod
    def create_transfer(
        self,
        from_feed_id: int,
        to_feed_id: int,
        amount: int,
        currency: str,
        date_distance: int,
    ) -> DetectedTransfer:
        """Create a suggested transfer.

        Raises:
            ConflictError: If either feed is already in a non-rejected transfer
            PeriodLockedError: If either feed's period is locked
        """
        pass

    @abstractmethod
    def get_transfer(self, transfer_id: int) -> Optional[DetectedTransfer]:
        """Get transfer by ID."""
        pass

    @abstractmethod
    def list_transfers(
        self, tenant_id: Optional[str] = None, status: Optional[TransferStatus] = None
    ) -> list[DetectedTransfer]:
        """List transfers with optional filters, ordered by ID."""
        pass

    @abstractmethod
    def list_transfer_feed_ids(self, feed_ids: Sequence[int]) -> set[int]:
        """Subset of feed_ids that belong to a non-rejected transfer."""
        pass

    @abstractmethod
    def list_rejected_transfer_pairs(self, feed_ids: Sequence[int]) -> set[frozenset[int]]:
        """Feed ID pairs, among feed_ids, whose transfer was rejected."""
        pass

    @abstractmethod
    def update_transfer_status(
        self,
        transfer_id: int,
        expected: TransferStatus,
        status: TransferStatus,
        resolved_by: Optional[str],
        resolved_at: Optional[datetime],
        from_transaction_id: Optional[int] = None,
        to_transaction_id: Optional[int] = None,
    ) -> DetectedTransfer:
        """Conditionally move a transfer from `expected` to `status`.

        Rejecting deactivates both legs. Confirming fails when either feed has
        an active matched match. When ledger postings are given they are
        recorded in the same commit, and only if none were recorded before.

        Raises:
            NotFoundError: If the transfer does not exist
            ConflictError: If the transfer is not in `expected` status, already
                has postings, or a leg was matched meanwhile
            PeriodLockedError: If either feed's period is locked
        """
        pass

    # Period lock operations
    @abstractmethod
    def get_period_lock(self, account_id: int, period: str) -> Optional[PeriodLock]:
        """Get lock metadata for an account period, if any was ever written."""
        pass

    @abstractmethod
    def is_period_locked(self, account_id: int, period: str) -> bool:
        """Check whether an account period is locked."""
        pass

    @abstractmethod
    def lock_period(self, account_id: int, period: str, locked_by: str, locked_at: datetime) -> bool:
        """Lock a period if it has no suggested or unmatched feed transactions.

        The reconciliation check and the write are one conditional statement.

        Returns:
            True if the period is locked afterwards, False if the lock was
            refused because of open feed transactions
        """
        pass

    @abstractmethod
    def unlock_period(
        self, account_id: int, period: str, unlocked_by: str, unlocked_at: datetime
    ) -> PeriodLock:
        """Unlock a period (no-op when already open)."""
        pass
