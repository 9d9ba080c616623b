"""Account domain service."""

from typing import Optional
from ledgerline.database.base import Database
from ledgerline.domain.entities import Account as AccountEntity, CsvMapping
from ledgerline.domain.errors import ConflictError, NotFoundError, ValidationError, account_not_found
from ledgerline.pipeline.normalizer import validate_mapping


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(self, name: str, bank_name: str, csv_mapping: Optional[CsvMapping] = None) -> int:
        """Create a new account.

        Args:
            name: Account name
            bank_name: Bank name
            csv_mapping: Optional CSV mapping to remember for imports

        Returns:
            Account ID

        Raises:
            ValidationError: If the name is empty or the mapping is incomplete
            ConflictError: If account name already exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Account name is required")

        if self.db.get_account_by_name(name) is not None:
            raise ConflictError(f"Account with name '{name}' already exists")

        if csv_mapping is not None:
            validate_mapping(csv_mapping)

        return self.db.create_account(name=name, bank_name=bank_name, csv_mapping=csv_mapping)

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(self, include_archived: bool = False) -> list[AccountEntity]:
        """List accounts.

        Args:
            include_archived: Also return archived accounts

        Returns:
            List of account entities
        """
        return self.db.list_accounts(include_archived=include_archived)

    def archive_account(self, account_id: int) -> None:
        """Archive an account. Its transactions and import history are kept.

        Raises:
            NotFoundError: If account not found
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        self.db.delete_account(account_id)

    def save_mapping(self, account_id: int, csv_mapping: CsvMapping) -> None:
        """Remember the CSV mapping used for this account's imports.

        Raises:
            NotFoundError: If account not found
            ValidationError: If the mapping is incomplete
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        validate_mapping(csv_mapping)
        self.db.update_account_mapping(account_id, csv_mapping)

    def get_mapping(self, account_id: int) -> Optional[CsvMapping]:
        """Return the remembered CSV mapping of an account, if any.

        Raises:
            NotFoundError: If account not found
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account.csv_mapping
