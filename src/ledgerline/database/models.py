"""SQLAlchemy models for ledgerline database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    create_engine,
    false,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def utcnow() -> datetime:
    """Current UTC time without tzinfo, as SQLite round-trips it."""
    return datetime.now(UTC).replace(tzinfo=None)


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    bank_name = Column(String, nullable=False)
    csv_mapping = Column(JSON, nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="account")
    import_batches = relationship("ImportBatch", back_populates="account")


class Category(Base):
    """Category model with hierarchical structure."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    parent = relationship("Category", remote_side=[id], backref="children")


class Payee(Base):
    """Known payee with alternative spellings."""

    __tablename__ = "payees"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    aliases = Column(JSON, default=list, nullable=False)
    default_category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class Rule(Base):
    """Categorization rule model. Conditions are stored as tagged dictionaries."""

    __tablename__ = "rules"

    id = Column(Integer, primary_key=True)
    keyword = Column(String, nullable=False)
    match_type = Column(String, nullable=False)
    case_sensitive = Column(Boolean, default=False, nullable=False)
    target_category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    suggested_payee = Column(String, nullable=True)
    priority = Column(Integer, default=50, nullable=False)
    conditions = Column(JSON, nullable=True)
    is_enabled = Column(Boolean, default=True, nullable=False)
    use_count = Column(Integer, default=0, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class ImportBatch(Base):
    """One committed CSV import."""

    __tablename__ = "import_batches"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    file_name = Column(String, nullable=False)
    imported_at = Column(DateTime, default=utcnow, nullable=False)
    total_rows = Column(Integer, nullable=False)
    imported_count = Column(Integer, nullable=False)
    duplicate_count = Column(Integer, nullable=False)
    error_count = Column(Integer, nullable=False)
    csv_mapping_snapshot = Column(JSON, nullable=True)
    is_undone = Column(Boolean, default=False, nullable=False)
    undone_at = Column(DateTime, nullable=True)

    # Relationships
    account = relationship("Account", back_populates="import_batches")
    transactions = relationship("Transaction", back_populates="batch")


class Transaction(Base):
    """Transaction model. Amounts are signed integer cents."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Integer, nullable=False)
    payee = Column(String, nullable=True)
    payee_id = Column(Integer, ForeignKey("payees.id"), nullable=True)
    description = Column(String, nullable=False)
    fingerprint = Column(String(64), nullable=False)
    source_batch_id = Column(Integer, ForeignKey("import_batches.id"), nullable=True)
    lines = Column(JSON, nullable=False)
    is_split = Column(Boolean, default=False, nullable=False)
    is_reviewed = Column(Boolean, default=False, nullable=False)
    reconciled = Column(Boolean, default=False, nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False)
    imported_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="transactions")
    batch = relationship("ImportBatch", back_populates="transactions")


# Fingerprints are unique among live transactions of an account; archived
# rows (e.g. from an undone batch) do not block a re-import.
Index(
    "uq_transactions_account_fingerprint",
    Transaction.account_id,
    Transaction.fingerprint,
    unique=True,
    sqlite_where=Transaction.is_archived == false(),
    postgresql_where=Transaction.is_archived == false(),
)
Index("ix_transactions_account_date", Transaction.account_id, Transaction.date)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
