"""Inter-account transfer detection and resolution."""

import logging
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Callable, Optional, Union

from ledgerrec.config import MatchingConfig
from ledgerrec.database.base import Database
from ledgerrec.domain import errors
from ledgerrec.domain.entities import (
    BankFeedTransaction,
    DetectedTransfer,
    MatchStatus,
    TransferStatus,
)
from ledgerrec.domain.normalizer import date_distance_days, same_currency
from ledgerrec.domain.period_lock import PeriodLockService
from ledgerrec.domain.posting import DatabaseLedgerPoster, LedgerPoster

logger = logging.getLogger(__name__)

# (from_currency, to_currency, on_date) -> rate, or None when unknown
RateProvider = Callable[[str, str, date], Optional[Union[Decimal, float]]]


class TransferDetector:
    """Pairs feed transactions across accounts that are one money movement."""

    def __init__(
        self,
        db: Database,
        config: Optional[MatchingConfig] = None,
        rate_provider: Optional[RateProvider] = None,
        poster: Optional[LedgerPoster] = None,
        lock_service: Optional[PeriodLockService] = None,
    ):
        """Initialize transfer detector.

        Args:
            db: Database instance
            config: Matching configuration (defaults to MatchingConfig())
            rate_provider: Optional FX rate lookup for cross-currency pairs
            poster: Ledger poster used on confirm (defaults to DatabaseLedgerPoster)
            lock_service: Period lock service (defaults to one over db)
        """
        self.db = db
        self.config = config or MatchingConfig()
        self.rate_provider = rate_provider
        self.poster = poster or DatabaseLedgerPoster(db)
        self.locks = lock_service or PeriodLockService(db)

    def _require_feed(self, feed_id: int) -> BankFeedTransaction:
        feed = self.db.get_feed_transaction(feed_id)
        if feed is None:
            raise errors.NotFoundError(errors.feed_transaction_not_found(feed_id))
        return feed

    def _require_transfer(self, transfer_id: int) -> DetectedTransfer:
        transfer = self.db.get_transfer(transfer_id)
        if transfer is None:
            raise errors.NotFoundError(errors.transfer_not_found(transfer_id))
        return transfer

    def _amounts_match(self, source: BankFeedTransaction, target: BankFeedTransaction) -> bool:
        """Whether the outflow `source` and inflow `target` move the same money."""
        if source.amount >= 0 or target.amount <= 0:
            return False
        if same_currency(source, target):
            return source.amount == -target.amount
        if self.rate_provider is None:
            return False
        rate = self.rate_provider(source.currency.upper(), target.currency.upper(), source.date)
        if rate is None:
            return False
        return round(abs(source.amount) * rate) == target.amount

    def _is_locked(self, feed: BankFeedTransaction, cache: dict) -> bool:
        key = (feed.account_id, feed.period)
        if key not in cache:
            cache[key] = self.db.is_period_locked(*key)
        return cache[key]

    def detect(self, tenant_id: str, start: date, end: date) -> list[DetectedTransfer]:
        """Scan a tenant's feeds for transfer pairs and persist them as suggested.

        Only feeds that are not matched and not already part of a
        non-rejected transfer are considered. When a feed fits several
        pairs, the pair with the smallest date distance wins, then the
        smallest combined id, then the smallest outflow id.

        Args:
            tenant_id: Tenant to scan
            start: First feed date (inclusive)
            end: Last feed date (inclusive)

        Returns:
            Newly created transfers

        Raises:
            ValidationError: If start is after end
        """
        if start > end:
            raise errors.ValidationError(f"Start date {start} is after end date {end}")

        feeds = self.db.list_feed_transactions(start_date=start, end_date=end, tenant_id=tenant_id)
        feed_ids = [feed.id for feed in feeds]
        statuses = self.db.get_feed_statuses(feed_ids)
        in_transfer = self.db.list_transfer_feed_ids(feed_ids)
        rejected = self.db.list_rejected_transfer_pairs(feed_ids)

        open_feeds = [
            feed
            for feed in feeds
            if feed.amount != 0
            and statuses[feed.id] != MatchStatus.MATCHED
            and feed.id not in in_transfer
        ]

        window = self.config.transfer_window_days
        pairs = []
        for i, a in enumerate(open_feeds):
            for b in open_feeds[i + 1 :]:
                if a.account_id == b.account_id:
                    continue
                distance = date_distance_days(a.date, b.date)
                if distance > window:
                    continue
                source, target = (a, b) if a.amount < 0 else (b, a)
                if not self._amounts_match(source, target):
                    continue
                if frozenset((source.id, target.id)) in rejected:
                    continue
                pairs.append((distance, source.id + target.id, source.id, source, target))

        pairs.sort(key=lambda pair: pair[:3])

        used: set[int] = set()
        locked_cache: dict = {}
        created = []
        for distance, _, _, source, target in pairs:
            if source.id in used or target.id in used:
                continue
            if self._is_locked(source, locked_cache) or self._is_locked(target, locked_cache):
                logger.warning(
                    "Skipping transfer pair %s -> %s: period locked", source.id, target.id
                )
                continue
            try:
                transfer = self.db.create_transfer(
                    source.id, target.id, abs(source.amount), source.currency, distance
                )
            except (errors.ConflictError, errors.PeriodLockedError) as e:
                logger.warning("Skipping transfer pair %s -> %s: %s", source.id, target.id, e)
                continue
            used.update((source.id, target.id))
            created.append(transfer)

        logger.info(
            "Transfer detection for tenant %s %s..%s: %d pair(s) proposed",
            tenant_id,
            start,
            end,
            len(created),
        )
        return created

    def create_transfer(self, from_feed_id: int, to_feed_id: int) -> DetectedTransfer:
        """Manually pair two feed transactions as a suggested transfer.

        The pair is oriented from the outflow to the inflow regardless of
        argument order.

        Raises:
            NotFoundError: If either feed transaction does not exist
            ValidationError: If the feeds are the same, in one account, or
                do not carry opposite equal amounts
            ConflictError: If either feed is matched or already in a transfer
            PeriodLockedError: If either feed's period is locked
        """
        if from_feed_id == to_feed_id:
            raise errors.ValidationError("A transfer cannot pair a feed transaction with itself")

        a = self._require_feed(from_feed_id)
        b = self._require_feed(to_feed_id)
        if a.account_id == b.account_id:
            raise errors.ValidationError("Transfer legs must belong to different accounts")

        source, target = (a, b) if a.amount < 0 else (b, a)
        if not self._amounts_match(source, target):
            raise errors.ValidationError(
                f"Feed transactions {a.id} and {b.id} do not carry opposite equal amounts"
            )

        statuses = self.db.get_feed_statuses([source.id, target.id])
        for feed in (source, target):
            if statuses[feed.id] == MatchStatus.MATCHED:
                raise errors.ConflictError(errors.feed_already_matched(feed.id))
            self.locks.ensure_unlocked(feed.account_id, feed.period)

        return self.db.create_transfer(
            source.id,
            target.id,
            abs(source.amount),
            source.currency,
            date_distance_days(source.date, target.date),
        )

    def _legs(self, transfer: DetectedTransfer) -> tuple[BankFeedTransaction, BankFeedTransaction]:
        source = self._require_feed(transfer.from_feed_id)
        target = self._require_feed(transfer.to_feed_id)
        for feed in (source, target):
            self.locks.ensure_unlocked(feed.account_id, feed.period)
        return source, target

    def _resolve(
        self, transfer: DetectedTransfer, status: TransferStatus, actor: str
    ) -> Optional[DetectedTransfer]:
        """Flip suggested -> status; None when a concurrent call already did."""
        try:
            return self.db.update_transfer_status(
                transfer.id, TransferStatus.SUGGESTED, status, actor, datetime.now(UTC)
            )
        except errors.ConflictError:
            current = self.db.get_transfer(transfer.id)
            if current is not None and current.status == status:
                return None
            raise

    def confirm(self, transfer_id: int, actor: str) -> DetectedTransfer:
        """Confirm a transfer and post its two linked ledger legs.

        The legs, their link and the status flip are committed together, so
        a failure leaves the transfer ``suggested`` with no ledger rows.
        Confirming a confirmed transfer succeeds without posting again; one
        that was confirmed without postings gets them now.

        Raises:
            NotFoundError: If the transfer does not exist
            ConflictError: If the transfer was rejected or a leg was matched
            PeriodLockedError: If either feed's period is locked
        """
        transfer = self._require_transfer(transfer_id)
        if transfer.status == TransferStatus.REJECTED:
            raise errors.ConflictError(f"Transfer {transfer_id} was rejected")
        if transfer.status == TransferStatus.CONFIRMED and transfer.from_transaction_id is not None:
            return transfer

        source, target = self._legs(transfer)
        if transfer.status == TransferStatus.CONFIRMED:
            logger.warning("Transfer %s is confirmed without postings, posting now", transfer_id)
            resolved_by, resolved_at = transfer.resolved_by, transfer.resolved_at
        else:
            resolved_by, resolved_at = actor, datetime.now(UTC)

        try:
            from_txn, to_txn = self.poster.post_transfer(source, target, actor)
            confirmed = self.db.update_transfer_status(
                transfer_id,
                transfer.status,
                TransferStatus.CONFIRMED,
                resolved_by,
                resolved_at,
                from_transaction_id=from_txn.id,
                to_transaction_id=to_txn.id,
            )
        except errors.ConflictError:
            self.db.rollback()
            current = self.db.get_transfer(transfer_id)
            if current is not None and current.from_transaction_id is not None:
                # A concurrent confirm won
                return current
            raise
        except BaseException:
            self.db.rollback()
            raise

        logger.info("Transfer %s confirmed by %s", transfer_id, actor)
        return confirmed

    def reject(self, transfer_id: int, actor: str) -> DetectedTransfer:
        """Reject a transfer, freeing both feeds for ordinary matching.

        Rejecting a rejected transfer succeeds.

        Raises:
            NotFoundError: If the transfer does not exist
            ConflictError: If the transfer is confirmed
            PeriodLockedError: If either feed's period is locked
        """
        transfer = self._require_transfer(transfer_id)
        if transfer.status == TransferStatus.REJECTED:
            return transfer
        if transfer.status == TransferStatus.CONFIRMED:
            raise errors.ConflictError(f"Transfer {transfer_id} is already confirmed")

        self._legs(transfer)
        rejected = self._resolve(transfer, TransferStatus.REJECTED, actor)
        if rejected is None:
            return self.db.get_transfer(transfer_id)

        logger.info("Transfer %s rejected by %s", transfer_id, actor)
        return rejected

    def list(self, tenant_id: str, status: Optional[TransferStatus] = None) -> list[DetectedTransfer]:
        """List a tenant's transfers, optionally filtered by status."""
        return self.db.list_transfers(tenant_id=tenant_id, status=status)
