"""Tests for description and period normalization."""

import pytest
from datetime import date

from ledgerrec.domain.errors import ValidationError
from ledgerrec.domain.normalizer import (
    date_distance_days,
    description_similarity,
    normalize_description,
    parse_period,
    period_bounds,
    period_key,
)


class TestNormalizeDescription:
    """Tests for normalize_description."""

    def test_drops_store_numbers_and_punctuation(self):
        assert normalize_description("COFFEE SHOP #4521") == {"coffee", "shop"}

    def test_drops_processor_words(self):
        assert normalize_description("POS PURCHASE Grocery-Mart") == {"grocerymart"}
        assert normalize_description("VISA DEBIT Interac Bakery") == {"bakery"}

    def test_drops_reference_codes(self):
        """Long tokens with several digits are references, short ones are kept."""
        assert normalize_description("AMAZON MKTP AB12C34D") == {"amazon", "mktp"}
        assert normalize_description("Shop 7eleven") == {"shop", "7eleven"}

    def test_drops_single_characters(self):
        assert normalize_description("A B coffee") == {"coffee"}

    def test_collapses_whitespace_and_case(self):
        assert normalize_description("  Coffee\t\tSHOP  ") == normalize_description("coffee shop")

    def test_empty_input(self):
        assert normalize_description("") == frozenset()
        assert normalize_description(None) == frozenset()


class TestDescriptionSimilarity:
    """Tests for description_similarity."""

    def test_identical_after_normalization(self):
        assert description_similarity("COFFEE SHOP #4521", "Coffee Shop") == 1.0

    def test_partial_overlap_is_jaccard(self):
        assert description_similarity("Coffee Shop", "Coffee House") == pytest.approx(1 / 3)

    def test_disjoint(self):
        assert description_similarity("Coffee Shop", "Gas Station") == 0.0

    def test_both_empty_is_zero(self):
        assert description_similarity("", "") == 0.0
        assert description_similarity("#123", "POS") == 0.0

    def test_symmetric(self):
        a, b = "Grocery Mart Downtown", "grocery mart"
        assert description_similarity(a, b) == description_similarity(b, a)


def test_date_distance_is_absolute():
    assert date_distance_days(date(2026, 1, 10), date(2026, 1, 13)) == 3
    assert date_distance_days(date(2026, 1, 13), date(2026, 1, 10)) == 3
    assert date_distance_days(date(2026, 1, 10), date(2026, 1, 10)) == 0


class TestPeriods:
    """Tests for YYYY-MM period helpers."""

    def test_period_key(self):
        assert period_key(date(2026, 1, 10)) == "2026-01"
        assert period_key(date(2026, 12, 31)) == "2026-12"

    def test_period_bounds(self):
        assert period_bounds("2026-01") == (date(2026, 1, 1), date(2026, 1, 31))
        assert period_bounds("2026-02") == (date(2026, 2, 1), date(2026, 2, 28))
        assert period_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))
        assert period_bounds("2026-12") == (date(2026, 12, 1), date(2026, 12, 31))

    @pytest.mark.parametrize("bad", ["2026-13", "2026-00", "2026-1", "202601", "Jan 2026", ""])
    def test_malformed_period_raises(self, bad):
        with pytest.raises(ValidationError):
            parse_period(bad)

    def test_parse_period_strips_whitespace(self):
        assert parse_period(" 2026-03 ") == "2026-03"
