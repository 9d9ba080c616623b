"""Transaction domain service."""

from dataclasses import replace
from typing import Optional, Sequence
from datetime import date, datetime
from ledgerline.database.base import Database
from ledgerline.domain.entities import SplitLine, Transaction as TransactionEntity
from ledgerline.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    category_not_found,
    transaction_not_found,
    transaction_reconciled,
)


class TransactionService:
    """Service for managing transactions.

    Every edit is a compare-and-swap on ``updated_at``. Callers holding a
    copy of the transaction pass its ``updated_at`` as ``expected_updated_at``
    so edits made since then surface as ``ConcurrentEditError``; otherwise the
    freshly read value is used.
    """

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def _require_editable(self, transaction_id: int) -> TransactionEntity:
        txn = self.db.get_transaction(transaction_id)
        if txn is None or txn.is_archived:
            raise NotFoundError(transaction_not_found(transaction_id))
        if txn.reconciled:
            raise DependencyError(transaction_reconciled(transaction_id))
        return txn

    def _check_category(self, category_id: Optional[int]) -> None:
        if category_id is not None and self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))

    def set_category(
        self,
        transaction_id: int,
        category_id: Optional[int],
        expected_updated_at: Optional[datetime] = None,
    ) -> TransactionEntity:
        """Categorize a transaction with a single line and mark it reviewed.

        Args:
            transaction_id: Transaction ID
            category_id: Category ID, or None to clear
            expected_updated_at: ``updated_at`` of the caller's copy

        Raises:
            NotFoundError: If transaction or category doesn't exist
            DependencyError: If the transaction is reconciled
            ConcurrentEditError: If the transaction changed since it was read
        """
        txn = self._require_editable(transaction_id)
        self._check_category(category_id)

        return self.db.update_transaction(
            transaction_id,
            expected_updated_at=expected_updated_at or txn.updated_at,
            lines=(SplitLine(amount=txn.amount, category_id=category_id),),
            is_split=False,
            is_reviewed=True,
        )

    def split_transaction(
        self,
        transaction_id: int,
        lines: Sequence[SplitLine],
        expected_updated_at: Optional[datetime] = None,
    ) -> TransactionEntity:
        """Replace a transaction's lines with a split.

        Raises:
            ValidationError: If fewer than two lines are given or they don't
                add up to the transaction amount
            NotFoundError: If transaction or a category doesn't exist
            DependencyError: If the transaction is reconciled
            ConcurrentEditError: If the transaction changed since it was read
        """
        txn = self._require_editable(transaction_id)
        if len(lines) < 2:
            raise ValidationError("A split needs at least two lines")
        if not replace(txn, lines=tuple(lines)).lines_balance():
            total = sum(line.amount for line in lines)
            raise ValidationError(
                f"Split lines total {total} cents but the transaction is {txn.amount} cents"
            )
        for line in lines:
            self._check_category(line.category_id)

        return self.db.update_transaction(
            transaction_id,
            expected_updated_at=expected_updated_at or txn.updated_at,
            lines=tuple(lines),
            is_split=True,
        )

    def set_reviewed(
        self,
        transaction_id: int,
        reviewed: bool = True,
        expected_updated_at: Optional[datetime] = None,
    ) -> TransactionEntity:
        """Set or clear the reviewed flag."""
        txn = self._require_editable(transaction_id)
        return self.db.update_transaction(
            transaction_id,
            expected_updated_at=expected_updated_at or txn.updated_at,
            is_reviewed=reviewed,
        )

    def set_payee(
        self,
        transaction_id: int,
        payee: str,
        payee_id: Optional[int] = None,
        expected_updated_at: Optional[datetime] = None,
    ) -> TransactionEntity:
        """Set the payee text (and optionally the known payee) of a transaction."""
        txn = self._require_editable(transaction_id)
        payee = payee.strip()
        if not payee:
            raise ValidationError("Payee is required")
        return self.db.update_transaction(
            transaction_id,
            expected_updated_at=expected_updated_at or txn.updated_at,
            payee=payee,
            payee_id=payee_id,
        )

    def mark_reconciled(
        self,
        transaction_id: int,
        reconciled: bool = True,
        expected_updated_at: Optional[datetime] = None,
    ) -> TransactionEntity:
        """Set or clear the reconciled flag.

        Reconciled transactions are frozen for the rule engine, ordinary
        edits and batch undo.
        """
        txn = self.db.get_transaction(transaction_id)
        if txn is None or txn.is_archived:
            raise NotFoundError(transaction_not_found(transaction_id))
        return self.db.update_transaction(
            transaction_id,
            expected_updated_at=expected_updated_at or txn.updated_at,
            reconciled=reconciled,
        )

    def delete_transaction(self, transaction_id: int) -> None:
        """Archive a transaction.

        Raises:
            NotFoundError: If transaction doesn't exist
            DependencyError: If the transaction is reconciled
        """
        self._require_editable(transaction_id)
        self.db.delete_transaction(transaction_id)

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category_path: Optional[str] = None,
        account_id: Optional[int] = None,
        batch_id: Optional[int] = None,
        unreviewed_only: bool = False,
        include_archived: bool = False,
    ) -> list[TransactionEntity]:
        """List transactions with filters.

        Args:
            start_date: Optional start date filter
            end_date: Optional end date filter
            category_path: Optional category path filter
            account_id: Optional account ID filter
            batch_id: Optional import batch filter
            unreviewed_only: Only transactions not yet reviewed
            include_archived: Include archived transactions

        Returns:
            List of transaction entities, newest first
        """
        category_id = None
        if category_path is not None:
            category = self.db.get_category_by_path(category_path)
            if category is None:
                # Category doesn't exist, return empty list
                return []
            category_id = category.id

        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            account_id=account_id,
            category_id=category_id,
            batch_id=batch_id,
            unreviewed_only=unreviewed_only,
            include_archived=include_archived,
        )
