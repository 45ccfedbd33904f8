"""Shared pytest fixtures for ledgerrec tests."""

import itertools
import os
import tempfile
from datetime import date

import pytest

from ledgerrec.config import MatchingConfig
from ledgerrec.database.factories import create_sqlite_database
from ledgerrec.domain.account import AccountService
from ledgerrec.domain.feed_import import FeedImportService
from ledgerrec.domain.ledger import LedgerService
from ledgerrec.domain.reconciliation import ReconciliationService

TENANT = "acme"
USER = "alice"


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService for the test tenant."""
    return AccountService(temp_db, TENANT)


@pytest.fixture
def feed_service(temp_db):
    """Create a FeedImportService for the test tenant."""
    return FeedImportService(temp_db, TENANT)


@pytest.fixture
def ledger_service(temp_db):
    """Create a LedgerService for the test tenant."""
    return LedgerService(temp_db, TENANT)


@pytest.fixture
def config():
    """Matching configuration used by the service fixture."""
    return MatchingConfig()


@pytest.fixture
def service(temp_db, config):
    """Create a ReconciliationService acting as USER in TENANT."""
    return ReconciliationService(temp_db, TENANT, USER, config=config)


@pytest.fixture
def checking(account_service):
    """A USD checking account."""
    account_id = account_service.create_account("Checking", "First Bank", "USD")
    return account_service.get_account(account_id)


@pytest.fixture
def savings(account_service):
    """A USD savings account."""
    account_id = account_service.create_account("Savings", "First Bank", "USD")
    return account_service.get_account(account_id)


@pytest.fixture
def add_feed(feed_service):
    """Factory adding a bank feed transaction; returns its ID."""
    counter = itertools.count(1)

    def _add(account, amount: int, on: date, description: str = "", currency=None) -> int:
        return feed_service.add_feed_transaction(
            account_id=account.id,
            external_id=f"EXT-{next(counter)}",
            date=on,
            amount=amount,
            description=description,
            currency=currency,
        )

    return _add


@pytest.fixture
def add_txn(ledger_service):
    """Factory adding a manual ledger transaction; returns its ID."""

    def _add(account, amount: int, on: date, description: str = "", currency=None) -> int:
        return ledger_service.create_transaction(
            account_id=account.id,
            date=on,
            amount=amount,
            description=description,
            currency=currency,
        )

    return _add


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
