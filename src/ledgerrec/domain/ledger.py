"""Ledger transaction domain service."""

from typing import Optional
from datetime import date

from ledgerrec.database.base import Database
from ledgerrec.domain.account import AccountService
from ledgerrec.domain.entities import LedgerSource, Transaction as TransactionEntity


class LedgerService:
    """Service for entering and listing ledger transactions of one tenant."""

    def __init__(self, db: Database, tenant_id: str):
        """Initialize ledger service.

        Args:
            db: Database instance
            tenant_id: Tenant whose ledger is visible through this service
        """
        self.db = db
        self.tenant_id = tenant_id
        self.account_service = AccountService(db, tenant_id)

    def create_transaction(
        self,
        account_id: int,
        date: date,
        amount: int,
        description: Optional[str] = None,
        currency: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> int:
        """Create a manual ledger transaction.

        Args:
            account_id: Account ID
            date: Transaction date
            amount: Signed amount in cents
            description: Optional description
            currency: Currency code (defaults to the account's currency)
            category_id: Optional category reference

        Returns:
            Transaction ID

        Raises:
            NotFoundError: If account doesn't exist in the tenant
        """
        account = self.account_service.require_account(account_id)
        return self.db.create_transaction(
            account_id=account.id,
            date=date,
            description=description or "",
            amount=amount,
            currency=currency or account.currency,
            category_id=category_id,
            source=LedgerSource.MANUAL,
        )

    def list_transactions(
        self,
        account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[TransactionEntity]:
        """List ledger transactions of the tenant with optional filters."""
        if account_id is not None:
            self.account_service.require_account(account_id)
        return self.db.list_transactions(
            account_id=account_id,
            start_date=start_date,
            end_date=end_date,
            tenant_id=self.tenant_id,
        )
