"""Domain model entities for ledgerrec.

These are pure data classes representing reconciliation concepts, independent
of database schema. Amounts are always signed integer cents.
"""

from dataclasses import dataclass
from datetime import datetime, date
from enum import Enum
from typing import Optional

SYSTEM_ACTOR = "system"


class MatchStatus(str, Enum):
    """Reconciliation status of a match row (and of a feed transaction)."""

    UNMATCHED = "unmatched"
    SUGGESTED = "suggested"
    MATCHED = "matched"


class RecordState(str, Enum):
    """Lifecycle state of a match row."""

    ACTIVE = "active"
    DELETED = "deleted"


class TransferStatus(str, Enum):
    """Status of a detected transfer."""

    SUGGESTED = "suggested"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class LockStatus(str, Enum):
    """Lock status of an account period."""

    OPEN = "open"
    LOCKED = "locked"


class LedgerSource(str, Enum):
    """Origin of a ledger transaction."""

    MANUAL = "manual"
    BANK_FEED = "bank_feed"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class Account:
    """Bank account domain entity, owned by exactly one tenant."""

    id: int
    tenant_id: str
    name: str
    institution: str
    currency: str
    created_at: datetime


@dataclass(frozen=True)
class BankFeedTransaction:
    """One bank-statement line imported from an external feed."""

    id: int
    account_id: int
    external_id: str
    date: date
    description: str
    amount: int
    currency: str
    period: str
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Ledger transaction recorded in the account register."""

    id: int
    account_id: int
    date: date
    description: str
    amount: int
    currency: str
    category_id: Optional[str]
    source: LedgerSource
    linked_transaction_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class TransactionMatch:
    """Link between one bank feed transaction and at most one ledger transaction."""

    id: int
    bank_feed_transaction_id: int
    transaction_id: Optional[int]
    status: MatchStatus
    confidence: float
    reasons: tuple[str, ...]
    matched_at: Optional[datetime]
    matched_by: Optional[str]
    state: RecordState
    created_at: datetime
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.state == RecordState.ACTIVE


@dataclass(frozen=True)
class DetectedTransfer:
    """Hypothesis that two feed transactions are one inter-account movement."""

    id: int
    from_feed_id: int
    to_feed_id: int
    amount: int
    currency: str
    status: TransferStatus
    date_distance: int
    created_at: datetime
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    from_transaction_id: Optional[int] = None
    to_transaction_id: Optional[int] = None


@dataclass(frozen=True)
class PeriodLock:
    """Persisted lock metadata for an account period."""

    account_id: int
    period: str
    status: LockStatus
    locked_at: Optional[datetime]
    locked_by: Optional[str]
    unlocked_at: Optional[datetime]
    unlocked_by: Optional[str]


@dataclass(frozen=True)
class ReconciliationCounts:
    """Feed transaction counts by derived reconciliation status."""

    matched: int = 0
    suggested: int = 0
    unmatched: int = 0

    @property
    def total(self) -> int:
        return self.matched + self.suggested + self.unmatched


@dataclass(frozen=True)
class PeriodStatus:
    """Reconciliation state of one account for one calendar month."""

    account_id: int
    period: str
    status: LockStatus
    matched_count: int
    suggested_count: int
    unmatched_count: int
    locked_at: Optional[datetime] = None
    locked_by: Optional[str] = None
    unlocked_at: Optional[datetime] = None
    unlocked_by: Optional[str] = None

    @property
    def total_count(self) -> int:
        return self.matched_count + self.suggested_count + self.unmatched_count

    @property
    def reconciliation_percent(self) -> int:
        """Share of matched feed transactions, 100 for an empty period."""
        if self.total_count == 0:
            return 100
        return round(self.matched_count / self.total_count * 100)

    @property
    def is_locked(self) -> bool:
        return self.status == LockStatus.LOCKED


@dataclass(frozen=True)
class MatchSuggestion:
    """A scored ledger candidate for a feed transaction."""

    transaction_id: int
    confidence: float
    reasons: tuple[str, ...]
    transaction: Transaction


@dataclass(frozen=True)
class MatchRunResult:
    """Summary of one suggestion-generation pass."""

    account_id: int
    period: str
    matched: int = 0
    suggested: int = 0
    unmatched: int = 0

    @property
    def processed(self) -> int:
        return self.matched + self.suggested + self.unmatched


@dataclass(frozen=True)
class BulkItemResult:
    """Per-item outcome of a bulk operation."""

    id: int
    success: bool
    error: Optional[str] = None
    error_type: Optional[str] = None
    match: Optional[TransactionMatch] = None
    transaction: Optional[Transaction] = None


@dataclass(frozen=True)
class ReconciliationGap:
    """Insight raised for an account whose feed is poorly reconciled."""

    account_id: int
    account_name: str
    total_bank_feed: int
    matched: int
    unmatched: int
    reconciliation_percent: int
    priority: str
    trigger_id: str
    actionable: bool = True
