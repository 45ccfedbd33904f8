"""Canonicalization of feed and ledger transactions into comparable keys.

Everything here is a pure function: no database access, no clock.
"""

import re
from datetime import date
from typing import Protocol

from dateutil.relativedelta import relativedelta

from ledgerrec.domain.errors import ValidationError

# Processor and channel words that bank feeds add but users rarely type.
NOISE_TOKENS = frozenset(
    {
        "ach",
        "card",
        "dbt",
        "debit",
        "interac",
        "mastercard",
        "mc",
        "pos",
        "pp",
        "purchase",
        "ref",
        "sq",
        "trx",
        "tst",
        "txn",
        "visa",
        "www",
    }
)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_PERIOD = re.compile(r"^(\d{4})-(\d{2})$")


class _HasMoney(Protocol):
    amount: int
    currency: str


def normalize_amount(tx: _HasMoney) -> int:
    """Return the transaction amount as signed integer cents."""
    return int(tx.amount)


def same_currency(a: _HasMoney, b: _HasMoney) -> bool:
    """Check whether two transactions are denominated in the same currency."""
    return a.currency.strip().upper() == b.currency.strip().upper()


def _is_reference_code(token: str) -> bool:
    digits = sum(1 for ch in token if ch.isdigit())
    return len(token) >= 6 and digits >= 3


def normalize_description(text: str | None) -> frozenset[str]:
    """Reduce a free-text description to a set of meaningful tokens.

    Lowercases, strips punctuation, collapses whitespace and drops tokens that
    vary between bank text and user memos: store and reference numbers, long
    alphanumeric reference codes, single characters and processor words.

    Examples:
        >>> sorted(normalize_description("COFFEE SHOP #4521"))
        ['coffee', 'shop']
        >>> sorted(normalize_description("POS PURCHASE Grocery-Mart"))
        ['grocerymart']
    """
    if not text:
        return frozenset()

    cleaned = _NON_ALNUM.sub("", text.lower())
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()

    tokens = set()
    for token in cleaned.split(" "):
        if len(token) <= 1:
            continue
        if token.isdigit():
            continue
        if token in NOISE_TOKENS:
            continue
        if _is_reference_code(token):
            continue
        tokens.add(token)
    return frozenset(tokens)


def description_similarity(a: str | None, b: str | None) -> float:
    """Jaccard similarity of two normalized descriptions, in [0, 1]."""
    tokens_a = normalize_description(a)
    tokens_b = normalize_description(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def date_distance_days(a: date, b: date) -> int:
    """Absolute number of days between two dates."""
    return abs((a - b).days)


def period_key(value: date) -> str:
    """Return the calendar-month key ("YYYY-MM") a date falls into."""
    return f"{value.year:04d}-{value.month:02d}"


def parse_period(period: str) -> str:
    """Validate and canonicalize a "YYYY-MM" period key.

    Raises:
        ValidationError: If the key is malformed
    """
    match = _PERIOD.match(period.strip()) if period else None
    if match is None:
        raise ValidationError(f"Invalid period '{period}': expected YYYY-MM")
    month = int(match.group(2))
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid period '{period}': month must be 01-12")
    return f"{match.group(1)}-{match.group(2)}"


def period_bounds(period: str) -> tuple[date, date]:
    """Return the first and last day of a "YYYY-MM" period.

    Raises:
        ValidationError: If the key is malformed
    """
    key = parse_period(period)
    year, month = (int(part) for part in key.split("-"))
    first = date(year, month, 1)
    last = first + relativedelta(months=1, days=-1)
    return first, last
