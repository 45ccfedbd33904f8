"""Reconciliation-gap insights."""

from ledgerrec.database.base import Database
from ledgerrec.domain.entities import ReconciliationGap

GAP_THRESHOLD_PERCENT = 80
TRIGGER_PREFIX = "reconciliation_gap"


def gap_priority(percent: int) -> str:
    """Priority of a reconciliation gap: critical below 40%, high below 60%, else medium."""
    if percent < 40:
        return "critical"
    if percent < 60:
        return "high"
    return "medium"


class ReconciliationInsightService:
    """Flags accounts whose bank feed is poorly reconciled."""

    def __init__(self, db: Database):
        """Initialize insight service.

        Args:
            db: Database instance
        """
        self.db = db

    def reconciliation_gaps(self, tenant_id: str) -> list[ReconciliationGap]:
        """Find accounts below the reconciliation threshold.

        Counts cover all of an account's feed transactions. Accounts without
        feed transactions are skipped.

        Args:
            tenant_id: Tenant to analyze

        Returns:
            Gaps ordered by reconciliation percentage ascending, then account ID
        """
        gaps = []
        for account in self.db.list_accounts(tenant_id):
            counts = self.db.count_feed_statuses(account.id)
            if counts.total == 0:
                continue

            percent = round(counts.matched / counts.total * 100)
            if percent >= GAP_THRESHOLD_PERCENT:
                continue

            gaps.append(
                ReconciliationGap(
                    account_id=account.id,
                    account_name=account.name,
                    total_bank_feed=counts.total,
                    matched=counts.matched,
                    unmatched=counts.total - counts.matched,
                    reconciliation_percent=percent,
                    priority=gap_priority(percent),
                    trigger_id=f"{TRIGGER_PREFIX}:{account.id}",
                )
            )

        gaps.sort(key=lambda gap: (gap.reconciliation_percent, gap.account_id))
        return gaps
