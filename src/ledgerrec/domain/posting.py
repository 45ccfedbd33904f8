"""Ledger posting collaborators.

The reconciliation core never writes ledger rows itself. Creating a ledger
transaction from a bank feed line, or the two legs of a transfer, goes
through a LedgerPoster.

Postings are left uncommitted. The caller records the match or transfer
postings in the commit that follows and calls ``Database.rollback`` when
anything fails, so a failed operation leaves no ledger rows behind.
"""

import logging
from abc import ABC, abstractmethod

from ledgerrec.database.base import Database
from ledgerrec.domain.entities import BankFeedTransaction, LedgerSource, Transaction

logger = logging.getLogger(__name__)


class LedgerPoster(ABC):
    """Creates ledger postings on behalf of the reconciliation core."""

    @abstractmethod
    def post_feed(self, feed: BankFeedTransaction, actor: str) -> Transaction:
        """Create one ledger transaction mirroring a bank feed line."""
        pass

    @abstractmethod
    def post_transfer(
        self, from_feed: BankFeedTransaction, to_feed: BankFeedTransaction, actor: str
    ) -> tuple[Transaction, Transaction]:
        """Create two linked ledger transactions, one per account."""
        pass


class DatabaseLedgerPoster(LedgerPoster):
    """LedgerPoster writing through the ledgerrec database."""

    def __init__(self, db: Database):
        self.db = db

    def _post(self, feed: BankFeedTransaction, source: LedgerSource) -> int:
        return self.db.create_transaction(
            account_id=feed.account_id,
            date=feed.date,
            description=feed.description,
            amount=feed.amount,
            currency=feed.currency,
            source=source,
            commit=False,
        )

    def post_feed(self, feed: BankFeedTransaction, actor: str) -> Transaction:
        transaction_id = self._post(feed, LedgerSource.BANK_FEED)
        logger.debug("Posted transaction %s from feed %s for %s", transaction_id, feed.id, actor)
        return self.db.get_transaction(transaction_id)

    def post_transfer(
        self, from_feed: BankFeedTransaction, to_feed: BankFeedTransaction, actor: str
    ) -> tuple[Transaction, Transaction]:
        from_id = self._post(from_feed, LedgerSource.TRANSFER)
        to_id = self._post(to_feed, LedgerSource.TRANSFER)
        self.db.link_transactions(from_id, to_id, commit=False)
        logger.debug(
            "Posted transfer legs %s/%s from feeds %s/%s for %s",
            from_id,
            to_id,
            from_feed.id,
            to_feed.id,
            actor,
        )
        return self.db.get_transaction(from_id), self.db.get_transaction(to_id)
