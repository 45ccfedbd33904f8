"""Tests for the match engine through the reconciliation service."""

import pytest
from dataclasses import replace
from datetime import date, timedelta

from ledgerrec.config import MatchingConfig
from ledgerrec.domain import errors
from ledgerrec.domain.entities import (
    SYSTEM_ACTOR,
    LedgerSource,
    MatchStatus,
    RecordState,
)
from ledgerrec.domain.posting import DatabaseLedgerPoster
from ledgerrec.domain.reconciliation import ReconciliationService

TENANT = "acme"
USER = "alice"

JAN_10 = date(2026, 1, 10)


class ClaimLostPoster(DatabaseLedgerPoster):
    """Poster handing back a transaction another feed claimed meanwhile."""

    def __init__(self, db, claimed_id):
        super().__init__(db)
        self.claimed_id = claimed_id

    def post_feed(self, feed, actor):
        super().post_feed(feed, actor)
        return self.db.get_transaction(self.claimed_id)


class InterruptedPoster(DatabaseLedgerPoster):
    """Poster interrupted right after writing its row."""

    def post_feed(self, feed, actor):
        super().post_feed(feed, actor)
        raise KeyboardInterrupt


@pytest.fixture
def suggest_only(temp_db):
    """Service with the exact-match fast path disabled."""
    return ReconciliationService(
        temp_db, TENANT, USER, config=MatchingConfig(auto_match_enabled=False)
    )


class TestRunMatching:
    """Tests for suggestion passes."""

    def test_coffee_shop_is_auto_matched(self, service, temp_db, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "COFFEE SHOP #4521")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop")

        result = service.run_matching(checking.id, "2026-01")

        assert (result.matched, result.suggested, result.unmatched) == (1, 0, 0)
        match = temp_db.get_active_match(feed_id)
        assert match.status == MatchStatus.MATCHED
        assert match.transaction_id == txn_id
        assert match.confidence >= 0.9
        assert match.matched_by == SYSTEM_ACTOR

    def test_coffee_shop_is_suggested_without_fast_path(
        self, suggest_only, temp_db, checking, add_feed, add_txn
    ):
        feed_id = add_feed(checking, -5000, JAN_10, "COFFEE SHOP #4521")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop")

        result = suggest_only.run_matching(checking.id, "2026-01")

        assert (result.matched, result.suggested, result.unmatched) == (0, 1, 0)
        match = temp_db.get_active_match(feed_id)
        assert match.status == MatchStatus.SUGGESTED
        assert match.transaction_id == txn_id
        assert match.confidence >= 0.9
        assert match.reasons[0] == "Exact amount match"
        assert match.matched_by is None

    def test_feed_without_candidate_gets_unmatched_row(self, service, temp_db, checking, add_feed):
        feed_id = add_feed(checking, -1234, JAN_10, "Mystery")

        result = service.run_matching(checking.id, "2026-01")

        assert result.unmatched == 1
        match = temp_db.get_active_match(feed_id)
        assert match.status == MatchStatus.UNMATCHED
        assert match.transaction_id is None
        assert match.confidence == 0.0

    def test_candidates_from_neighbouring_month_within_window(
        self, suggest_only, temp_db, checking, add_feed, add_txn
    ):
        feed_id = add_feed(checking, -2500, date(2026, 1, 31), "Hardware")
        txn_id = add_txn(checking, -2500, date(2026, 2, 2), "Hardware")

        suggest_only.run_matching(checking.id, "2026-01")

        assert temp_db.get_active_match(feed_id).transaction_id == txn_id

    def test_ledger_transaction_claimed_once(self, service, temp_db, checking, add_feed, add_txn):
        first = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        second = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop")

        result = service.run_matching(checking.id, "2026-01")

        assert result.matched == 1
        assert temp_db.get_active_match(first).transaction_id == txn_id
        assert temp_db.get_active_match(second).status == MatchStatus.UNMATCHED
        assert len(service.list_matches(status=MatchStatus.MATCHED)) == 1

    def test_rerun_refreshes_rows_and_skips_matched_feeds(
        self, suggest_only, temp_db, checking, add_feed, add_txn
    ):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        add_txn(checking, -5000, JAN_10 + timedelta(days=3), "Coffee")
        suggest_only.run_matching(checking.id, "2026-01")
        first_row = temp_db.get_active_match(feed_id)

        better = add_txn(checking, -5000, JAN_10, "Coffee Shop")
        suggest_only.run_matching(checking.id, "2026-01")
        refreshed = temp_db.get_active_match(feed_id)

        assert refreshed.id == first_row.id
        assert refreshed.transaction_id == better

        suggest_only.confirm_match(refreshed.id)
        result = suggest_only.run_matching(checking.id, "2026-01")
        assert result.processed == 0

    def test_concurrent_claim_downgrades_to_suggested(
        self, service, temp_db, checking, add_feed, add_txn, monkeypatch
    ):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop")

        def lose_race(*args, **kwargs):
            raise errors.ConflictError(errors.transaction_already_matched(txn_id))

        monkeypatch.setattr(temp_db, "create_confirmed_match", lose_race)
        result = service.run_matching(checking.id, "2026-01")

        assert (result.matched, result.suggested) == (0, 1)
        assert temp_db.get_active_match(feed_id).status == MatchStatus.SUGGESTED

    def test_malformed_period(self, service, checking):
        with pytest.raises(errors.ValidationError):
            service.run_matching(checking.id, "2026-13")


class TestSuggestions:
    """Tests for get_suggestions."""

    def test_ranked_best_first(self, service, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "COFFEE SHOP")
        far = add_txn(checking, -5000, JAN_10 + timedelta(days=4), "Other")
        exact = add_txn(checking, -5000, JAN_10, "Coffee Shop")
        near = add_txn(checking, -5000, JAN_10 - timedelta(days=2), "Bakery")
        add_txn(checking, -5001, JAN_10, "Coffee Shop")

        suggestions = service.get_suggestions(feed_id)

        assert [s.transaction_id for s in suggestions] == [exact, near, far]
        assert suggestions[0].confidence == 1.0
        assert suggestions[0].transaction.description == "Coffee Shop"

    def test_below_threshold_is_omitted(self, temp_db, checking, add_feed, add_txn):
        service = ReconciliationService(
            temp_db, TENANT, USER, config=MatchingConfig(suggest_threshold=0.65)
        )
        feed_id = add_feed(checking, -5000, JAN_10, "COFFEE SHOP")
        add_txn(checking, -5000, JAN_10 + timedelta(days=4), "Other")

        assert service.get_suggestions(feed_id) == []

    def test_limit(self, service, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        for offset in range(4):
            add_txn(checking, -5000, JAN_10 + timedelta(days=offset), "Coffee Shop")

        assert len(service.get_suggestions(feed_id, limit=2)) == 2
        with pytest.raises(errors.ValidationError):
            service.get_suggestions(feed_id, limit=0)

    def test_claimed_transactions_are_not_suggested(self, service, checking, add_feed, add_txn):
        first = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        second = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop")
        service.create_match(first, txn_id)

        assert service.get_suggestions(second) == []

    def test_matched_feed_conflicts(self, service, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop")
        service.create_match(feed_id, txn_id)

        with pytest.raises(errors.ConflictError):
            service.get_suggestions(feed_id)

    def test_unknown_feed(self, service):
        with pytest.raises(errors.NotFoundError):
            service.get_suggestions(999)


class TestCreateMatch:
    """Tests for manual matching."""

    def test_manual_match(self, service, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_id = add_txn(checking, -4999, JAN_10, "Something")

        match = service.create_match(feed_id, txn_id)

        assert match.status == MatchStatus.MATCHED
        assert match.confidence == 1.0
        assert match.matched_by == USER
        assert match.reasons[0] == "Manual match"

    def test_replaces_suggested_row(self, suggest_only, temp_db, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        add_txn(checking, -5000, JAN_10, "Coffee Shop")
        other = add_txn(checking, -5000, JAN_10 + timedelta(days=1), "Cafe")
        suggest_only.run_matching(checking.id, "2026-01")
        suggested = temp_db.get_active_match(feed_id)

        match = suggest_only.create_match(feed_id, other)

        assert match.id != suggested.id
        assert temp_db.get_active_match(feed_id).id == match.id
        old = temp_db.get_match(suggested.id)
        assert old.state == RecordState.DELETED
        assert old.deleted_by == USER

    def test_same_pair_is_idempotent(self, service, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop")

        first = service.create_match(feed_id, txn_id)
        second = service.create_match(feed_id, txn_id)

        assert first.id == second.id
        assert len(service.list_matches()) == 1

    def test_feed_matched_elsewhere_conflicts(self, service, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_a = add_txn(checking, -5000, JAN_10, "Coffee Shop")
        txn_b = add_txn(checking, -5000, JAN_10, "Coffee Shop")
        service.create_match(feed_id, txn_a)

        with pytest.raises(errors.ConflictError):
            service.create_match(feed_id, txn_b)

    def test_transaction_matched_elsewhere_conflicts(self, service, checking, add_feed, add_txn):
        feed_a = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        feed_b = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop")
        service.create_match(feed_a, txn_id)

        with pytest.raises(errors.ConflictError):
            service.create_match(feed_b, txn_id)

    def test_cross_currency_is_invalid(self, service, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop", currency="EUR")

        with pytest.raises(errors.ValidationError):
            service.create_match(feed_id, txn_id)

    def test_unknown_ids(self, service, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10)
        txn_id = add_txn(checking, -5000, JAN_10)

        with pytest.raises(errors.NotFoundError):
            service.create_match(999, txn_id)
        with pytest.raises(errors.NotFoundError):
            service.create_match(feed_id, 999)


class TestConfirmAndUnmatch:
    """Tests for confirm, unmatch and bulk confirm."""

    def test_confirm_suggestion(self, suggest_only, temp_db, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        add_txn(checking, -5000, JAN_10, "Coffee Shop")
        suggest_only.run_matching(checking.id, "2026-01")
        match_id = temp_db.get_active_match(feed_id).id

        confirmed = suggest_only.confirm_match(match_id)

        assert confirmed.status == MatchStatus.MATCHED
        assert confirmed.matched_by == USER
        assert confirmed.matched_at is not None
        assert temp_db.get_feed_statuses([feed_id])[feed_id] == MatchStatus.MATCHED

    def test_confirm_is_idempotent(self, suggest_only, temp_db, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        add_txn(checking, -5000, JAN_10, "Coffee Shop")
        suggest_only.run_matching(checking.id, "2026-01")
        match_id = temp_db.get_active_match(feed_id).id

        first = suggest_only.confirm_match(match_id)
        second = suggest_only.confirm_match(match_id)

        assert second.id == first.id
        assert second.matched_at == first.matched_at
        assert len(temp_db.list_matches(include_deleted=True)) == 1

    def test_confirm_unmatched_row_is_invalid(self, service, temp_db, checking, add_feed):
        feed_id = add_feed(checking, -1234, JAN_10, "Mystery")
        service.run_matching(checking.id, "2026-01")

        with pytest.raises(errors.ValidationError):
            service.confirm_match(temp_db.get_active_match(feed_id).id)

    def test_confirm_claimed_target_conflicts(
        self, suggest_only, temp_db, checking, add_feed, add_txn
    ):
        feed_a = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        feed_b = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        add_txn(checking, -5000, JAN_10, "Coffee Shop")
        suggest_only.run_matching(checking.id, "2026-01")
        match_a = temp_db.get_active_match(feed_a)
        match_b = temp_db.get_active_match(feed_b)
        assert match_a.transaction_id == match_b.transaction_id

        suggest_only.confirm_match(match_a.id)
        with pytest.raises(errors.ConflictError):
            suggest_only.confirm_match(match_b.id)
        assert temp_db.get_match(match_b.id).status == MatchStatus.SUGGESTED

    def test_unmatch(self, service, temp_db, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop")
        match = service.create_match(feed_id, txn_id)

        service.unmatch(match.id)

        assert temp_db.get_active_match(feed_id) is None
        assert temp_db.get_feed_statuses([feed_id])[feed_id] == MatchStatus.UNMATCHED
        deleted = temp_db.get_match(match.id)
        assert deleted.state == RecordState.DELETED
        assert deleted.deleted_by == USER
        assert txn_id not in temp_db.list_claimed_transaction_ids()

        with pytest.raises(errors.NotFoundError):
            service.unmatch(match.id)
        with pytest.raises(errors.NotFoundError):
            service.confirm_match(match.id)

    def test_bulk_confirm_partial_failure(self, suggest_only, temp_db, checking, add_feed, add_txn):
        feeds = []
        for i in range(1, 6):
            feeds.append(add_feed(checking, -1000 * i, JAN_10, f"Vendor {i}"))
            add_txn(checking, -1000 * i, JAN_10, f"Vendor {i}")
        suggest_only.run_matching(checking.id, "2026-01")
        match_ids = [temp_db.get_active_match(feed_id).id for feed_id in feeds]

        # Another feed claims the target of the third suggestion
        third_target = temp_db.get_match(match_ids[2]).transaction_id
        extra_feed = add_feed(checking, -3000, JAN_10, "Vendor 3")
        suggest_only.create_match(extra_feed, third_target)

        results = suggest_only.bulk_confirm_matches(match_ids)

        assert [r.id for r in results] == match_ids
        assert [r.success for r in results] == [True, True, False, True, True]
        assert results[2].error_type == "ConflictError"
        assert results[2].error
        assert all(r.match.status == MatchStatus.MATCHED for r in results if r.success)

    def test_bulk_confirm_reports_unknown_ids(self, service):
        results = service.bulk_confirm_matches([42])

        assert results[0].success is False
        assert results[0].error_type == "NotFoundError"


class TestBulkCreateTransactions:
    """Tests for posting ledger transactions from feed lines."""

    def test_posts_and_matches(self, service, temp_db, checking, add_feed, add_txn):
        feed_a = add_feed(checking, -1500, JAN_10, "Parking")
        feed_b = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        service.create_match(feed_b, add_txn(checking, -5000, JAN_10, "Coffee Shop"))

        results = service.bulk_create_transactions([feed_a, feed_b])

        assert results[0].success is True
        created = results[0].transaction
        assert created.amount == -1500
        assert created.description == "Parking"
        assert created.source == LedgerSource.BANK_FEED
        assert results[0].match.transaction_id == created.id
        assert results[0].match.status == MatchStatus.MATCHED

        assert results[1].success is False
        assert results[1].error_type == "ConflictError"

    def test_failed_match_discards_posting(
        self, service, temp_db, ledger_service, checking, add_feed, add_txn
    ):
        claimed = add_txn(checking, -5000, JAN_10, "Coffee Shop")
        service.create_match(add_feed(checking, -5000, JAN_10, "Coffee Shop"), claimed)
        feed_id = add_feed(checking, -1500, JAN_10, "Parking")
        racing = ReconciliationService(temp_db, TENANT, USER, poster=ClaimLostPoster(temp_db, claimed))

        results = racing.bulk_create_transactions([feed_id])

        assert results[0].success is False
        assert results[0].error_type == "ConflictError"
        assert [t.id for t in ledger_service.list_transactions()] == [claimed]
        assert temp_db.get_feed_statuses([feed_id])[feed_id] == MatchStatus.UNMATCHED

        retried = service.bulk_create_transactions([feed_id])

        assert retried[0].success is True
        assert len(ledger_service.list_transactions()) == 2

    def test_interrupted_posting_is_discarded(self, temp_db, ledger_service, checking, add_feed):
        feed_id = add_feed(checking, -1500, JAN_10, "Parking")
        interrupted = ReconciliationService(temp_db, TENANT, USER, poster=InterruptedPoster(temp_db))

        with pytest.raises(KeyboardInterrupt):
            interrupted.bulk_create_transactions([feed_id])

        assert ledger_service.list_transactions() == []
        assert temp_db.get_active_match(feed_id) is None


class TestTenantIsolation:
    """Ids owned by another tenant are reported as not found."""

    def test_other_tenant_cannot_see_matches(self, service, temp_db, checking, add_feed, add_txn):
        feed_id = add_feed(checking, -5000, JAN_10, "Coffee Shop")
        txn_id = add_txn(checking, -5000, JAN_10, "Coffee Shop")
        match = service.create_match(feed_id, txn_id)
        intruder = ReconciliationService(temp_db, "other-tenant", "mallory")

        with pytest.raises(errors.NotFoundError):
            intruder.unmatch(match.id)
        with pytest.raises(errors.NotFoundError):
            intruder.get_suggestions(feed_id)
        with pytest.raises(errors.NotFoundError):
            intruder.run_matching(checking.id, "2026-01")
        assert intruder.list_matches() == []


def test_service_uses_given_config(temp_db):
    config = replace(MatchingConfig(), max_suggestions=2)
    service = ReconciliationService(temp_db, TENANT, USER, config=config)

    assert service.engine.config.max_suggestions == 2
    assert service.transfers.config is config
