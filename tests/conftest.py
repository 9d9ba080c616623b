"""Shared pytest fixtures for ledgerline tests."""

import os
import tempfile
from datetime import date, datetime
from pathlib import Path

import pytest

from ledgerline.config import PipelineSettings
from ledgerline.database.factories import create_sqlite_database
from ledgerline.domain.account import AccountService
from ledgerline.domain.category import CategoryService
from ledgerline.domain.csv_import import ImportService
from ledgerline.domain.csv_mapping import CsvMappingService
from ledgerline.domain.entities import CsvMapping, Rule, Transaction
from ledgerline.domain.payee import PayeeService
from ledgerline.domain.rule import RuleService
from ledgerline.domain.transaction import TransactionService
from ledgerline.pipeline.context import ImportContext


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for CLI tests
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    return CategoryService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    return TransactionService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    return RuleService(temp_db)


@pytest.fixture
def payee_service(temp_db):
    return PayeeService(temp_db)


@pytest.fixture
def mapping_service(temp_db):
    return CsvMappingService(temp_db)


@pytest.fixture
def import_service(temp_db):
    return ImportService(temp_db)


@pytest.fixture
def signed_mapping():
    """Mapping for the plain Date,Description,Amount fixture files."""
    return CsvMapping(
        date_column="Date",
        amount_column="Amount",
        description_column="Description",
        date_format="yyyy-MM-dd",
    )


@pytest.fixture
def sample_account(account_service):
    """Create a sample account for testing."""
    account_id = account_service.create_account(name="Test Account", bank_name="Test Bank")
    return account_service.get_account(account_id)


@pytest.fixture
def sample_categories(category_service):
    """Create a small category tree and return path -> ID."""
    category_ids = {}
    for name in ("Food & Dining", "Shopping", "Transportation", "Bills"):
        category_ids[name] = category_service.create_category(name)
    for parent, name in (
        ("Food & Dining", "Groceries"),
        ("Food & Dining", "Coffee"),
        ("Transportation", "Gas"),
    ):
        category_ids[f"{parent} > {name}"] = category_service.create_category(name, parent_path=parent)
    return category_ids


@pytest.fixture
def import_rows(import_service, sample_account, signed_mapping):
    """Import raw rows into the sample account and return the ImportResult."""

    def _import(rows, **commit_kwargs):
        staged = import_service.stage_rows(rows, signed_mapping)
        preview = import_service.check_duplicates(sample_account.id, staged, signed_mapping)
        return import_service.commit(preview, **commit_kwargs)

    return _import


@pytest.fixture
def make_transaction():
    """Build an in-memory Transaction entity."""

    def _make(
        id=1,
        description="STARBUCKS STORE 123",
        amount=-550,
        txn_date=date(2024, 3, 15),
        account_id=1,
        **kwargs,
    ):
        now = datetime(2024, 3, 16, 12, 0, 0)
        return Transaction(
            id=id,
            account_id=account_id,
            date=txn_date,
            amount=amount,
            description=description,
            fingerprint=kwargs.pop("fingerprint", f"fp-{id}"),
            lines=kwargs.pop("lines", ()),
            imported_at=now,
            updated_at=kwargs.pop("updated_at", now),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_rule():
    """Build an in-memory Rule entity."""

    def _make(id=1, keyword="starbucks", match_type="contains", priority=50, target_category_id=1, **kwargs):
        now = datetime(2024, 1, 1)
        return Rule(
            id=id,
            keyword=keyword,
            match_type=match_type,
            target_category_id=target_category_id,
            priority=priority,
            created_at=now,
            updated_at=now,
            **kwargs,
        )

    return _make


@pytest.fixture
def context():
    """Empty import context for account 1 with default settings."""
    return ImportContext(account_id=1, settings=PipelineSettings())


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
