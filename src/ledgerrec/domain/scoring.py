"""Candidate scoring between a bank feed transaction and ledger transactions."""

from dataclasses import dataclass
from typing import Iterable, Optional

from ledgerrec.config import MatchingConfig
from ledgerrec.domain.entities import BankFeedTransaction, Transaction
from ledgerrec.domain.normalizer import (
    date_distance_days,
    description_similarity,
    normalize_amount,
    same_currency,
)

REASON_CURRENCY_MISMATCH = "Currency mismatch"
REASON_AMOUNT_MISMATCH = "Amount mismatch"
REASON_OUTSIDE_WINDOW = "Outside date window"


@dataclass(frozen=True)
class MatchScore:
    """Confidence of one feed/candidate pair and the reasons behind it."""

    confidence: float
    reasons: tuple[str, ...]
    date_distance: Optional[int] = None
    description_similarity: float = 0.0
    amount_matches: bool = False

    @property
    def is_candidate(self) -> bool:
        return self.confidence > 0

    def is_exact(self, config: MatchingConfig) -> bool:
        """Whether the pair qualifies for automatic matching."""
        return (
            self.amount_matches
            and self.date_distance == 0
            and self.description_similarity >= config.auto_match_similarity
        )


def _rejected(reason: str, distance: Optional[int] = None) -> MatchScore:
    return MatchScore(confidence=0.0, reasons=(reason,), date_distance=distance)


class CandidateScorer:
    """Weighted rule scoring of ledger candidates against a feed transaction.

    Amount is a gate: a candidate with a different amount, sign or currency
    scores 0 no matter how similar its description is. Candidates further
    than the configured date window are not candidates at all.
    """

    def __init__(self, config: Optional[MatchingConfig] = None):
        """Initialize scorer.

        Args:
            config: Matching configuration (defaults to MatchingConfig())
        """
        self.config = config or MatchingConfig()

    def score(self, feed: BankFeedTransaction, candidate: Transaction) -> MatchScore:
        """Score one candidate against a feed transaction.

        Args:
            feed: Bank feed transaction
            candidate: Ledger transaction

        Returns:
            MatchScore with confidence in [0, 1] and reasons ordered by
            descending contribution
        """
        config = self.config

        if not same_currency(feed, candidate):
            return _rejected(REASON_CURRENCY_MISMATCH)

        if normalize_amount(feed) != normalize_amount(candidate):
            return _rejected(REASON_AMOUNT_MISMATCH)

        distance = date_distance_days(feed.date, candidate.date)
        if distance > config.date_window_days:
            return _rejected(REASON_OUTSIDE_WINDOW, distance)

        contributions: list[tuple[str, float]] = [("Exact amount match", config.amount_weight)]

        if config.date_window_days == 0:
            date_credit = config.date_weight
        else:
            date_credit = config.date_weight * (1 - distance / config.date_window_days)
        if date_credit > 0:
            label = "Same date" if distance == 0 else f"Within {distance} day(s)"
            contributions.append((label, date_credit))

        similarity = description_similarity(feed.description, candidate.description)
        description_credit = config.description_weight * similarity
        if description_credit > 0:
            if similarity >= 0.90:
                label = "Description near-identical"
            elif similarity >= 0.50:
                label = "Description similar"
            else:
                label = "Description partially similar"
            contributions.append((label, description_credit))

        if candidate.account_id == feed.account_id and config.account_bonus > 0:
            contributions.append(("Same account", config.account_bonus))

        total = sum(credit for _, credit in contributions)
        confidence = round(min(1.0, max(0.0, total)), 4)

        # sorted() is stable, so equal contributions keep rule order
        ordered = sorted(contributions, key=lambda item: item[1], reverse=True)

        return MatchScore(
            confidence=confidence,
            reasons=tuple(label for label, _ in ordered),
            date_distance=distance,
            description_similarity=similarity,
            amount_matches=True,
        )

    def rank(
        self, feed: BankFeedTransaction, candidates: Iterable[Transaction]
    ) -> list[tuple[Transaction, MatchScore]]:
        """Score and order candidates, best first.

        Candidates scoring 0 are dropped. Ties on confidence are broken by
        smallest date distance, then smallest transaction id.
        """
        scored = []
        for candidate in candidates:
            result = self.score(feed, candidate)
            if result.is_candidate:
                scored.append((candidate, result))

        scored.sort(key=lambda pair: (-pair[1].confidence, pair[1].date_distance, pair[0].id))
        return scored
