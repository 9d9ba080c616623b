"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional
from datetime import date, datetime

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerline.domain.entities import (
    Account,
    Category,
    CommitResult,
    CsvMapping,
    ImportBatch,
    NewImportBatch,
    NewTransaction,
    Payee,
    Rule,
    SplitLine,
    Transaction,
    UndoResult,
)


class Database(ABC):
    """Abstract database interface for ledgerline.

    Mutating calls that take ``expected_updated_at`` are compare-and-swap
    writes: when the stored ``updated_at`` differs they raise
    ``ConcurrentEditError`` and change nothing. Infrastructure failures are
    raised as ``StorageError``.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(self, name: str, bank_name: str, csv_mapping: Optional[CsvMapping] = None) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_name(self, name: str) -> Optional[Account]:
        """Get account by exact name."""
        pass

    @abstractmethod
    def list_accounts(self, include_archived: bool = False) -> list[Account]:
        """List accounts."""
        pass

    @abstractmethod
    def update_account_mapping(self, account_id: int, csv_mapping: Optional[CsvMapping]) -> None:
        """Store (or clear) the CSV mapping remembered for an account."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account according to its deletion policy."""
        pass

    # Category operations
    @abstractmethod
    def create_category(self, name: str, parent_id: Optional[int] = None) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_path(self, path: str) -> Optional[Category]:
        """Get category by path (e.g., 'Food & Dining > Groceries')."""
        pass

    @abstractmethod
    def list_categories(self, include_archived: bool = False) -> list[Category]:
        """List categories."""
        pass

    @abstractmethod
    def delete_category(self, category_id: int) -> None:
        """Delete a category according to its deletion policy."""
        pass

    # Payee operations
    @abstractmethod
    def create_payee(
        self,
        name: str,
        aliases: tuple[str, ...] = (),
        default_category_id: Optional[int] = None,
    ) -> int:
        """Create a payee. Returns payee ID."""
        pass

    @abstractmethod
    def get_payee(self, payee_id: int) -> Optional[Payee]:
        """Get payee by ID."""
        pass

    @abstractmethod
    def get_payee_by_name(self, name: str) -> Optional[Payee]:
        """Get payee by exact name."""
        pass

    @abstractmethod
    def list_payees(self, include_archived: bool = False) -> list[Payee]:
        """List payees."""
        pass

    @abstractmethod
    def update_payee(
        self,
        payee_id: int,
        expected_updated_at: Optional[datetime] = None,
        name: Optional[str] = None,
        aliases: Optional[tuple[str, ...]] = None,
        default_category_id: Optional[int] = None,
    ) -> Payee:
        """Update payee fields. Returns the updated payee."""
        pass

    @abstractmethod
    def delete_payee(self, payee_id: int) -> None:
        """Delete a payee according to its deletion policy."""
        pass

    # Rule operations
    @abstractmethod
    def create_rule(
        self,
        keyword: str,
        match_type: str,
        target_category_id: int,
        priority: int,
        case_sensitive: bool = False,
        suggested_payee: Optional[str] = None,
        conditions: Optional[list[dict[str, Any]]] = None,
        is_enabled: bool = True,
    ) -> int:
        """Create a rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[Rule]:
        """Get rule by ID."""
        pass

    @abstractmethod
    def list_rules(self, enabled_only: bool = False) -> list[Rule]:
        """List rules, highest priority first."""
        pass

    @abstractmethod
    def update_rule(
        self,
        rule_id: int,
        expected_updated_at: Optional[datetime] = None,
        **fields: Any,
    ) -> Rule:
        """Update rule columns (keyword, priority, is_enabled, ...). Returns the updated rule."""
        pass

    @abstractmethod
    def record_rule_use(self, rule_id: int, used_at: datetime) -> None:
        """Increment the rule's use count and set its last-used time.

        The increment happens in SQL so concurrent callers never lose a count.
        """
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule according to its deletion policy."""
        pass

    # Transaction operations
    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        batch_id: Optional[int] = None,
        unreviewed_only: bool = False,
        include_archived: bool = False,
    ) -> list[Transaction]:
        """List transactions with optional filters.

        Args:
            start_date: Optional start date filter
            end_date: Optional end date filter
            account_id: Optional account ID filter
            category_id: Optional filter on the first line's category
            batch_id: Optional source batch filter
            unreviewed_only: If True, only return transactions not yet reviewed
            include_archived: If True, include archived transactions
        """
        pass

    @abstractmethod
    def update_transaction(
        self,
        transaction_id: int,
        expected_updated_at: Optional[datetime] = None,
        lines: Optional[tuple[SplitLine, ...]] = None,
        payee: Optional[str] = None,
        payee_id: Optional[int] = None,
        is_split: Optional[bool] = None,
        is_reviewed: Optional[bool] = None,
        reconciled: Optional[bool] = None,
    ) -> Transaction:
        """Update transaction fields. Returns the updated transaction.

        Raises:
            ConcurrentEditError: If ``expected_updated_at`` is stale
        """
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction according to its deletion policy."""
        pass

    # Import pipeline operations
    @abstractmethod
    def get_fingerprint_map(self, account_id: int) -> dict[str, int]:
        """Map fingerprint to transaction ID for live transactions of an account."""
        pass

    @abstractmethod
    def list_transactions_in_range(self, account_id: int, start_date: date, end_date: date) -> list[Transaction]:
        """Live transactions of an account dated within [start_date, end_date]."""
        pass

    @abstractmethod
    def commit_import_batch(self, batch: NewImportBatch, payloads: list[NewTransaction]) -> CommitResult:
        """Insert a batch row and all its transactions in one transaction.

        Raises:
            StorageError: If anything fails; nothing is persisted in that case
        """
        pass

    @abstractmethod
    def get_import_batch(self, batch_id: int) -> Optional[ImportBatch]:
        """Get import batch by ID."""
        pass

    @abstractmethod
    def list_import_batches(self, account_id: Optional[int] = None, limit: int = 20) -> list[ImportBatch]:
        """List import batches, newest first."""
        pass

    @abstractmethod
    def undo_import_batch(self, batch_id: int) -> UndoResult:
        """Archive a batch's transactions and mark it undone, atomically.

        Undoing an already undone batch changes nothing.

        Raises:
            NotFoundError: If the batch does not exist
            DependencyError: If any of its transactions is reconciled
        """
        pass
