"""Match engine: suggestion passes and the match lifecycle."""

import logging
from datetime import datetime, timedelta, UTC
from typing import Callable, Iterable, Optional

from ledgerrec.config import MatchingConfig
from ledgerrec.database.base import Database
from ledgerrec.domain import errors
from ledgerrec.domain.entities import (
    SYSTEM_ACTOR,
    BankFeedTransaction,
    BulkItemResult,
    MatchRunResult,
    MatchStatus,
    MatchSuggestion,
    Transaction,
    TransactionMatch,
)
from ledgerrec.domain.normalizer import parse_period, period_bounds, same_currency
from ledgerrec.domain.period_lock import PeriodLockService
from ledgerrec.domain.posting import DatabaseLedgerPoster, LedgerPoster
from ledgerrec.domain.scoring import CandidateScorer

logger = logging.getLogger(__name__)

MANUAL_MATCH_REASON = "Manual match"
POSTED_FROM_FEED_REASON = "Created from bank feed"


def run_bulk(ids: Iterable[int], operation: Callable[[int], BulkItemResult]) -> list[BulkItemResult]:
    """Apply an operation to each id independently.

    A DomainError on one item is recorded in its result and does not stop
    the remaining items.
    """
    results = []
    for item_id in ids:
        try:
            results.append(operation(item_id))
        except errors.DomainError as e:
            results.append(
                BulkItemResult(id=item_id, success=False, error=str(e), error_type=type(e).__name__)
            )
    return results


class MatchEngine:
    """Generates suggestions and moves matches through their lifecycle."""

    def __init__(
        self,
        db: Database,
        config: Optional[MatchingConfig] = None,
        poster: Optional[LedgerPoster] = None,
        lock_service: Optional[PeriodLockService] = None,
    ):
        """Initialize match engine.

        Args:
            db: Database instance
            config: Matching configuration (defaults to MatchingConfig())
            poster: Ledger poster used by post_feed (defaults to DatabaseLedgerPoster)
            lock_service: Period lock service (defaults to one over db)
        """
        self.db = db
        self.config = config or MatchingConfig()
        self.scorer = CandidateScorer(self.config)
        self.poster = poster or DatabaseLedgerPoster(db)
        self.locks = lock_service or PeriodLockService(db)

    def _require_feed(self, feed_id: int) -> BankFeedTransaction:
        feed = self.db.get_feed_transaction(feed_id)
        if feed is None:
            raise errors.NotFoundError(errors.feed_transaction_not_found(feed_id))
        return feed

    def _require_active_match(self, match_id: int) -> TransactionMatch:
        match = self.db.get_match(match_id)
        if match is None or not match.is_active:
            raise errors.NotFoundError(errors.match_not_found(match_id))
        return match

    def _is_matched(self, feed_id: int) -> bool:
        return self.db.get_feed_statuses([feed_id])[feed_id] == MatchStatus.MATCHED

    def _candidate_pool(self, account_id: int, start, end) -> list[Transaction]:
        window = timedelta(days=self.config.date_window_days)
        candidates = self.db.list_transactions(
            account_id=account_id, start_date=start - window, end_date=end + window
        )
        claimed = self.db.list_claimed_transaction_ids(account_id)
        return [c for c in candidates if c.id not in claimed]

    def run(self, account_id: int, period: str, actor: str = SYSTEM_ACTOR) -> MatchRunResult:
        """Generate or refresh suggestions for every open feed in a period.

        Feeds are processed in (date, id) order. A feed whose best candidate
        reaches the suggest threshold gets a ``suggested`` row, or a
        ``matched`` row on the exact-match fast path; any other feed gets an
        ``unmatched`` row.

        Args:
            account_id: Account ID
            period: Period key ("YYYY-MM")
            actor: Recorded as matched_by on auto-matched rows

        Returns:
            MatchRunResult with per-status counts

        Raises:
            ValidationError: If period is malformed
            PeriodLockedError: If the period is locked
        """
        period = parse_period(period)
        first, last = period_bounds(period)
        self.locks.ensure_unlocked(account_id, period)

        feeds = self.db.list_feed_transactions(account_id=account_id, period=period)
        statuses = self.db.get_feed_statuses([feed.id for feed in feeds])
        pending = [feed for feed in feeds if statuses[feed.id] != MatchStatus.MATCHED]

        pool = self._candidate_pool(account_id, first, last)
        claimed: set[int] = set()
        counts = {MatchStatus.MATCHED: 0, MatchStatus.SUGGESTED: 0, MatchStatus.UNMATCHED: 0}

        logger.debug(
            "Matching %d feed transaction(s) against %d candidate(s) for account %s period %s",
            len(pending),
            len(pool),
            account_id,
            period,
        )

        for feed in pending:
            available = [c for c in pool if c.id not in claimed]
            ranked = self.scorer.rank(feed, available)
            try:
                status = self._apply_best(feed, ranked, claimed, actor)
            except errors.ConflictError as e:
                logger.warning("Skipping feed transaction %s: %s", feed.id, e)
                continue
            counts[status] += 1

        result = MatchRunResult(
            account_id=account_id,
            period=period,
            matched=counts[MatchStatus.MATCHED],
            suggested=counts[MatchStatus.SUGGESTED],
            unmatched=counts[MatchStatus.UNMATCHED],
        )
        logger.info(
            "Match run for account %s period %s: %d matched, %d suggested, %d unmatched",
            account_id,
            period,
            result.matched,
            result.suggested,
            result.unmatched,
        )
        return result

    def _apply_best(self, feed, ranked, claimed: set[int], actor: str) -> MatchStatus:
        if not ranked or ranked[0][1].confidence < self.config.suggest_threshold:
            self.db.save_match_result(feed.id, MatchStatus.UNMATCHED, None, 0.0, ())
            return MatchStatus.UNMATCHED

        candidate, score = ranked[0]

        if self.config.auto_match_enabled and score.is_exact(self.config):
            try:
                self.db.create_confirmed_match(
                    feed.id,
                    candidate.id,
                    score.confidence,
                    score.reasons,
                    matched_by=actor,
                    matched_at=datetime.now(UTC),
                )
            except errors.ConflictError as e:
                logger.warning(
                    "Auto-match of feed %s to transaction %s lost a concurrent claim, suggesting instead: %s",
                    feed.id,
                    candidate.id,
                    e,
                )
            else:
                claimed.add(candidate.id)
                return MatchStatus.MATCHED

        self.db.save_match_result(
            feed.id, MatchStatus.SUGGESTED, candidate.id, score.confidence, score.reasons
        )
        return MatchStatus.SUGGESTED

    def suggestions(self, feed_id: int, limit: Optional[int] = None) -> list[MatchSuggestion]:
        """Ranked ledger candidates for one feed transaction.

        Candidates below the suggest threshold are omitted.

        Args:
            feed_id: Bank feed transaction ID
            limit: Maximum number of suggestions (defaults to config.max_suggestions)

        Raises:
            NotFoundError: If the feed transaction does not exist
            ConflictError: If the feed transaction is already matched
            ValidationError: If limit is not positive
        """
        if limit is None:
            limit = self.config.max_suggestions
        if limit < 1:
            raise errors.ValidationError(f"limit must be at least 1, got {limit}")

        feed = self._require_feed(feed_id)
        if self._is_matched(feed.id):
            raise errors.ConflictError(errors.feed_already_matched(feed.id))

        pool = self._candidate_pool(feed.account_id, feed.date, feed.date)
        suggestions = []
        for candidate, score in self.scorer.rank(feed, pool):
            if score.confidence < self.config.suggest_threshold:
                break
            suggestions.append(
                MatchSuggestion(
                    transaction_id=candidate.id,
                    confidence=score.confidence,
                    reasons=score.reasons,
                    transaction=candidate,
                )
            )
            if len(suggestions) == limit:
                break
        return suggestions

    def create_match(self, feed_id: int, transaction_id: int, actor: str) -> TransactionMatch:
        """Manually match a feed transaction to a ledger transaction.

        The match is immediately ``matched`` with confidence 1.0. Any active
        suggested or unmatched row of the feed is replaced.

        Raises:
            NotFoundError: If the feed or ledger transaction does not exist
            ValidationError: If the currencies differ
            ConflictError: If the feed or the ledger transaction is matched elsewhere
            PeriodLockedError: If the feed's period is locked
        """
        feed = self._require_feed(feed_id)
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise errors.NotFoundError(errors.transaction_not_found(transaction_id))

        if not same_currency(feed, transaction):
            raise errors.ValidationError(
                f"Cannot match {feed.currency} feed transaction {feed.id} "
                f"to {transaction.currency} transaction {transaction.id}"
            )

        active = self.db.get_active_match(feed.id)
        if active is not None and active.status == MatchStatus.MATCHED:
            if active.transaction_id == transaction.id:
                return active
            raise errors.ConflictError(errors.feed_already_matched(feed.id))

        self.locks.ensure_unlocked(feed.account_id, feed.period)

        score = self.scorer.score(feed, transaction)
        reasons = (MANUAL_MATCH_REASON,)
        if score.is_candidate:
            reasons += score.reasons

        match = self.db.create_confirmed_match(
            feed.id, transaction.id, 1.0, reasons, matched_by=actor, matched_at=datetime.now(UTC)
        )
        logger.info("Feed %s manually matched to transaction %s by %s", feed.id, transaction.id, actor)
        return match

    def confirm(self, match_id: int, actor: str) -> TransactionMatch:
        """Confirm a suggested match. Confirming a matched row succeeds.

        Raises:
            NotFoundError: If no active match with this ID exists
            ValidationError: If the match has no target transaction
            ConflictError: If the target transaction is already matched
            PeriodLockedError: If the feed's period is locked
        """
        match = self._require_active_match(match_id)
        if match.status == MatchStatus.MATCHED:
            return match
        if match.transaction_id is None:
            raise errors.ValidationError(f"Match {match_id} has no transaction to confirm")

        feed = self._require_feed(match.bank_feed_transaction_id)
        self.locks.ensure_unlocked(feed.account_id, feed.period)

        try:
            confirmed = self.db.confirm_match(match_id, matched_by=actor, matched_at=datetime.now(UTC))
        except errors.ConflictError:
            current = self.db.get_match(match_id)
            if (
                current is not None
                and current.is_active
                and current.status == MatchStatus.MATCHED
                and current.transaction_id == match.transaction_id
            ):
                return current
            raise

        logger.info("Match %s confirmed by %s", match_id, actor)
        return confirmed

    def unmatch(self, match_id: int, actor: str) -> TransactionMatch:
        """Soft-delete an active match, returning its feed to ``unmatched``.

        Raises:
            NotFoundError: If no active match with this ID exists
            PeriodLockedError: If the feed's period is locked
        """
        match = self._require_active_match(match_id)
        feed = self._require_feed(match.bank_feed_transaction_id)
        self.locks.ensure_unlocked(feed.account_id, feed.period)

        deleted = self.db.delete_match(match_id, deleted_by=actor, deleted_at=datetime.now(UTC))
        logger.info("Match %s removed by %s", match_id, actor)
        return deleted

    def bulk_confirm(self, match_ids: Iterable[int], actor: str) -> list[BulkItemResult]:
        """Confirm several matches independently."""

        def confirm_one(match_id: int) -> BulkItemResult:
            return BulkItemResult(id=match_id, success=True, match=self.confirm(match_id, actor))

        return run_bulk(match_ids, confirm_one)

    def post_feed(self, feed_id: int, actor: str) -> BulkItemResult:
        """Create a ledger transaction mirroring a feed line and match the two.

        The posting and the match are committed together; when the match
        write fails the posting is discarded.

        Raises:
            NotFoundError: If the feed transaction does not exist
            ConflictError: If the feed transaction is already matched
            PeriodLockedError: If the feed's period is locked
        """
        feed = self._require_feed(feed_id)
        if self._is_matched(feed.id):
            raise errors.ConflictError(errors.feed_already_matched(feed.id))
        self.locks.ensure_unlocked(feed.account_id, feed.period)

        try:
            transaction = self.poster.post_feed(feed, actor)
            match = self.db.create_confirmed_match(
                feed.id,
                transaction.id,
                1.0,
                (POSTED_FROM_FEED_REASON,),
                matched_by=actor,
                matched_at=datetime.now(UTC),
            )
        except BaseException:
            self.db.rollback()
            raise

        logger.info("Feed %s posted as transaction %s by %s", feed.id, transaction.id, actor)
        return BulkItemResult(id=feed_id, success=True, match=match, transaction=transaction)
