"""Period lock state machine.

A period is one account and one calendar month. It moves between ``open``
and ``locked``; locking is allowed only once every feed transaction in the
period is matched (directly or through a confirmed transfer).
"""

import logging
from datetime import datetime, UTC

from ledgerrec.database.base import Database
from ledgerrec.domain import errors
from ledgerrec.domain.entities import LockStatus, PeriodStatus
from ledgerrec.domain.normalizer import parse_period

logger = logging.getLogger(__name__)


class PeriodLockService:
    """Service for reading and changing the lock state of account periods."""

    def __init__(self, db: Database):
        """Initialize period lock service.

        Args:
            db: Database instance
        """
        self.db = db

    def status(self, account_id: int, period: str) -> PeriodStatus:
        """Get the reconciliation status of a period.

        Counts are derived from the current match and transfer state; only
        the lock metadata is stored.

        Args:
            account_id: Account ID
            period: Period key ("YYYY-MM")

        Returns:
            PeriodStatus

        Raises:
            ValidationError: If period is malformed
        """
        period = parse_period(period)
        counts = self.db.count_feed_statuses(account_id, period)
        lock = self.db.get_period_lock(account_id, period)

        return PeriodStatus(
            account_id=account_id,
            period=period,
            status=lock.status if lock else LockStatus.OPEN,
            matched_count=counts.matched,
            suggested_count=counts.suggested,
            unmatched_count=counts.unmatched,
            locked_at=lock.locked_at if lock else None,
            locked_by=lock.locked_by if lock else None,
            unlocked_at=lock.unlocked_at if lock else None,
            unlocked_by=lock.unlocked_by if lock else None,
        )

    def lock(self, account_id: int, period: str, actor: str) -> PeriodStatus:
        """Lock a period. Locking an already locked period succeeds.

        Args:
            account_id: Account ID
            period: Period key ("YYYY-MM")
            actor: User locking the period

        Returns:
            PeriodStatus after the lock

        Raises:
            ValidationError: If period is malformed
            UnreconciledPeriodError: If suggested or unmatched feed
                transactions remain; the period stays open
        """
        period = parse_period(period)
        if not self.db.lock_period(account_id, period, actor, datetime.now(UTC)):
            counts = self.db.count_feed_statuses(account_id, period)
            raise errors.UnreconciledPeriodError(
                errors.period_not_reconciled(account_id, period, counts.suggested, counts.unmatched)
            )

        logger.info("Period %s locked for account %s by %s", period, account_id, actor)
        return self.status(account_id, period)

    def unlock(self, account_id: int, period: str, actor: str) -> PeriodStatus:
        """Unlock a period. Unlocking an open period succeeds.

        Raises:
            ValidationError: If period is malformed
        """
        period = parse_period(period)
        was_locked = self.db.is_period_locked(account_id, period)
        self.db.unlock_period(account_id, period, actor, datetime.now(UTC))
        if was_locked:
            logger.info("Period %s unlocked for account %s by %s", period, account_id, actor)
        return self.status(account_id, period)

    def ensure_unlocked(self, account_id: int, period: str) -> None:
        """Fail fast if a period is locked.

        The persistence layer repeats this check inside each write, so a
        lock taken after this call still blocks the mutation.

        Raises:
            PeriodLockedError: If the period is locked
        """
        if self.db.is_period_locked(account_id, period):
            raise errors.PeriodLockedError(errors.period_locked(account_id, period))
