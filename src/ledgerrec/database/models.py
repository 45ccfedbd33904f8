"""SQLAlchemy models for ledgerrec database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    text,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    institution = Column(String, nullable=False)
    currency = Column(String(3), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_account_tenant_name"),)

    # Relationships
    feed_transactions = relationship("BankFeedTransaction", back_populates="account")
    transactions = relationship("Transaction", back_populates="account")


class BankFeedTransaction(Base):
    """Bank feed transaction model. Rows are never updated once written."""

    __tablename__ = "bank_feed_transactions"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    external_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    period = Column(String(7), nullable=False)
    description = Column(String, nullable=False, default="")
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("account_id", "external_id", name="uq_feed_account_external_id"),
        Index("ix_feed_account_period", "account_id", "period"),
    )

    # Relationships
    account = relationship("Account", back_populates="feed_transactions")


class Transaction(Base):
    """Ledger transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False, default="")
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    category_id = Column(String, nullable=True)
    source = Column(String, nullable=False, default="manual")
    linked_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (Index("ix_transaction_account_date", "account_id", "date"),)

    # Relationships
    account = relationship("Account", back_populates="transactions")


class TransactionMatch(Base):
    """Match between a bank feed transaction and a ledger transaction.

    The partial unique indexes enforce, at the database level, that a feed
    transaction has at most one active match and that a ledger transaction is
    claimed by at most one active matched row.
    """

    __tablename__ = "transaction_matches"

    id = Column(Integer, primary_key=True)
    bank_feed_transaction_id = Column(
        Integer, ForeignKey("bank_feed_transactions.id"), nullable=False
    )
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    status = Column(String, nullable=False)
    confidence = Column(Float, nullable=False, default=0.0)
    reasons = Column(JSON, nullable=False, default=list)
    matched_at = Column(DateTime, nullable=True)
    matched_by = Column(String, nullable=True)
    state = Column(String, nullable=False, default="active")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String, nullable=True)

    __table_args__ = (
        Index(
            "uq_match_active_feed",
            "bank_feed_transaction_id",
            unique=True,
            sqlite_where=text("state = 'active'"),
            postgresql_where=text("state = 'active'"),
        ),
        Index(
            "uq_match_claimed_transaction",
            "transaction_id",
            unique=True,
            sqlite_where=text("state = 'active' AND status = 'matched'"),
            postgresql_where=text("state = 'active' AND status = 'matched'"),
        ),
    )

    # Relationships
    feed_transaction = relationship("BankFeedTransaction")
    transaction = relationship("Transaction")


class DetectedTransfer(Base):
    """Detected inter-account transfer model."""

    __tablename__ = "detected_transfers"

    id = Column(Integer, primary_key=True)
    from_feed_id = Column(Integer, ForeignKey("bank_feed_transactions.id"), nullable=False)
    to_feed_id = Column(Integer, ForeignKey("bank_feed_transactions.id"), nullable=False)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String, nullable=False, default="suggested")
    date_distance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(String, nullable=True)
    from_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    to_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)

    # Relationships
    legs = relationship("TransferLeg", back_populates="transfer", cascade="all, delete-orphan")


class TransferLeg(Base):
    """Participation of one feed transaction in a transfer.

    A feed transaction may have at most one active leg, i.e. it belongs to at
    most one non-rejected transfer.
    """

    __tablename__ = "transfer_legs"

    id = Column(Integer, primary_key=True)
    transfer_id = Column(Integer, ForeignKey("detected_transfers.id"), nullable=False)
    feed_transaction_id = Column(
        Integer, ForeignKey("bank_feed_transactions.id"), nullable=False
    )
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index(
            "uq_transfer_leg_active_feed",
            "feed_transaction_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    # Relationships
    transfer = relationship("DetectedTransfer", back_populates="legs")


class PeriodLock(Base):
    """Lock metadata for one account and calendar month."""

    __tablename__ = "period_locks"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    period = Column(String(7), nullable=False)
    status = Column(String, nullable=False, default="open")
    locked_at = Column(DateTime, nullable=True)
    locked_by = Column(String, nullable=True)
    unlocked_at = Column(DateTime, nullable=True)
    unlocked_by = Column(String, nullable=True)

    __table_args__ = (UniqueConstraint("account_id", "period", name="uq_period_lock_account_period"),)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
