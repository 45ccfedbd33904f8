"""Account domain service."""

import re
from typing import Optional

from ledgerrec.database.base import Database
from ledgerrec.domain.entities import Account as AccountEntity
from ledgerrec.domain.errors import NotFoundError, ValidationError, account_not_found

_CURRENCY = re.compile(r"^[A-Z]{3}$")


class AccountService:
    """Service for managing the accounts of one tenant."""

    def __init__(self, db: Database, tenant_id: str):
        """Initialize account service.

        Args:
            db: Database instance
            tenant_id: Tenant whose accounts are visible through this service
        """
        self.db = db
        self.tenant_id = tenant_id

    def create_account(self, name: str, institution: str, currency: str) -> int:
        """Create a new account.

        Args:
            name: Account name, unique within the tenant
            institution: Bank or institution name
            currency: ISO 4217 currency code

        Returns:
            Account ID

        Raises:
            ValidationError: If name is empty or currency is not a 3-letter code
            ConflictError: If account name already exists in the tenant
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name must not be empty")
        currency = (currency or "").strip().upper()
        if not _CURRENCY.match(currency):
            raise ValidationError(f"Invalid currency '{currency}': expected a 3-letter code")

        return self.db.create_account(
            tenant_id=self.tenant_id, name=name, institution=institution or "", currency=currency
        )

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Returns:
            Account entity, or None if not found or owned by another tenant
        """
        account = self.db.get_account(account_id)
        if account is None or account.tenant_id != self.tenant_id:
            return None
        return account

    def require_account(self, account_id: int) -> AccountEntity:
        """Get account by ID or fail.

        Raises:
            NotFoundError: If not found or owned by another tenant
        """
        account = self.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts of the tenant."""
        return self.db.list_accounts(self.tenant_id)
