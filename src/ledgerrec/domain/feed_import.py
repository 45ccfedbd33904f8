"""Bank feed import domain service."""

import csv
import logging
from typing import Any, Optional
from datetime import date
from pathlib import Path

from ledgerrec.database.base import Database
from ledgerrec.domain.account import AccountService
from ledgerrec.domain.entities import BankFeedTransaction, MatchStatus
from ledgerrec.domain.errors import ValidationError
from ledgerrec.domain.normalizer import parse_period
from ledgerrec.utils.date_parser import parse_date
from ledgerrec.utils.amount_parser import parse_amount

logger = logging.getLogger(__name__)

# Accepted header spellings for each feed field
COLUMN_ALIASES = {
    "external_id": ("external_id", "id", "transaction id", "unique_id", "reference"),
    "date": ("date", "posted", "transaction date"),
    "description": ("description", "memo", "payee"),
    "amount": ("amount",),
    "currency": ("currency",),
}
REQUIRED_COLUMNS = ("external_id", "date", "amount")


class FeedImportService:
    """Service for adding bank feed transactions of one tenant."""

    def __init__(self, db: Database, tenant_id: str):
        """Initialize feed import service.

        Args:
            db: Database instance
            tenant_id: Tenant owning the imported accounts
        """
        self.db = db
        self.tenant_id = tenant_id
        self.account_service = AccountService(db, tenant_id)

    def add_feed_transaction(
        self,
        account_id: int,
        external_id: str,
        date: date,
        amount: int,
        description: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> int:
        """Add one bank feed transaction.

        Args:
            account_id: Account ID
            external_id: Bank-side identifier, unique per account
            date: Booking date
            amount: Signed amount in cents
            description: Optional bank description
            currency: Currency code (defaults to the account's currency)

        Returns:
            Feed transaction ID

        Raises:
            NotFoundError: If account doesn't exist in the tenant
            ValidationError: If external_id is empty
            ConflictError: If external_id already exists for the account
        """
        account = self.account_service.require_account(account_id)
        external_id = (external_id or "").strip()
        if not external_id:
            raise ValidationError("external_id must not be empty")

        return self.db.create_feed_transaction(
            account_id=account.id,
            external_id=external_id,
            date=date,
            description=description or "",
            amount=amount,
            currency=currency or account.currency,
        )

    def list_feed_transactions(
        self,
        account_id: Optional[int] = None,
        period: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[tuple[BankFeedTransaction, MatchStatus]]:
        """List feed transactions of the tenant with their derived status."""
        if account_id is not None:
            self.account_service.require_account(account_id)
        if period is not None:
            period = parse_period(period)

        feeds = self.db.list_feed_transactions(
            account_id=account_id,
            start_date=start_date,
            end_date=end_date,
            period=period,
            tenant_id=self.tenant_id,
        )
        statuses = self.db.get_feed_statuses([feed.id for feed in feeds])
        return [(feed, statuses[feed.id]) for feed in feeds]

    def import_csv(self, csv_file_path: str, account_id: int) -> dict[str, Any]:
        """Import bank feed transactions from a CSV file.

        Rows whose external_id already exists for the account are skipped,
        so importing the same statement twice is harmless.

        Args:
            csv_file_path: Path to CSV file
            account_id: Account the statement belongs to

        Returns:
            Dict with import statistics:
            - imported: number of feed transactions imported
            - skipped: number of rows skipped (duplicates)
            - errors: list of error messages

        Raises:
            NotFoundError: If account doesn't exist in the tenant
            ValidationError: If the file lacks required columns
            FileNotFoundError: If CSV file doesn't exist
        """
        account = self.account_service.require_account(account_id)

        csv_path = Path(csv_file_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

        imported = 0
        skipped = 0
        errors = []

        with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
            sample = f.read(1024)
            f.seek(0)
            try:
                delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
            except csv.Error:
                delimiter = ","

            reader = csv.DictReader(f, delimiter=delimiter)
            if reader.fieldnames is None:
                raise ValidationError("CSV file has no columns")

            column_map = self._map_columns(reader.fieldnames)
            missing = [field for field in REQUIRED_COLUMNS if field not in column_map]
            if missing:
                raise ValidationError(f"CSV file missing required columns: {', '.join(missing)}")

            for row_num, row in enumerate(reader, start=2):  # header is row 1
                values = {
                    field: (row.get(column) or "").strip() for field, column in column_map.items()
                }

                external_id = values["external_id"]
                if not external_id:
                    errors.append(f"Row {row_num}: Missing external_id")
                    continue

                if self.db.feed_transaction_exists(account.id, external_id):
                    skipped += 1
                    continue

                try:
                    self.db.create_feed_transaction(
                        account_id=account.id,
                        external_id=external_id,
                        date=parse_date(values["date"]),
                        description=values.get("description", ""),
                        amount=parse_amount(values["amount"]),
                        currency=values.get("currency") or account.currency,
                    )
                except ValueError as e:
                    errors.append(f"Row {row_num}: {e}")
                    continue
                imported += 1

        logger.info(
            "Imported %d feed transaction(s) into account %s (%d skipped, %d error(s))",
            imported,
            account.id,
            skipped,
            len(errors),
        )
        return {
            "imported": imported,
            "skipped": skipped,
            "errors": errors,
        }

    @staticmethod
    def _map_columns(fieldnames: list[str]) -> dict[str, str]:
        by_lower = {name.strip().lower(): name for name in fieldnames if name}
        column_map = {}
        for field, aliases in COLUMN_ALIASES.items():
            for alias in aliases:
                if alias in by_lower:
                    column_map[field] = by_lower[alias]
                    break
        return column_map
