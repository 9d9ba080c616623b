"""Payee domain service."""

from typing import Optional
from ledgerline.database.base import Database
from ledgerline.domain.entities import Payee as PayeeEntity, PayeeGuess
from ledgerline.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    category_not_found,
    payee_not_found,
)
from ledgerline.pipeline.payee_resolver import guess_payee
from ledgerline.utils.text import MAX_PAYEE_LENGTH


def _clean_aliases(aliases: tuple[str, ...]) -> tuple[str, ...]:
    seen = []
    for alias in aliases:
        alias = alias.strip()
        if alias and alias not in seen:
            seen.append(alias)
    return tuple(seen)


class PayeeService:
    """Service for managing known payees."""

    def __init__(self, db: Database):
        """Initialize payee service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_payee(
        self,
        name: str,
        aliases: tuple[str, ...] = (),
        default_category_id: Optional[int] = None,
    ) -> int:
        """Create a payee.

        Args:
            name: Display name
            aliases: Alternative spellings seen in bank descriptions
            default_category_id: Optional category suggested for this payee

        Returns:
            Payee ID

        Raises:
            ValidationError: If the name is empty or too long
            ConflictError: If a payee with that name exists
            NotFoundError: If the default category doesn't exist
        """
        name = name.strip()
        if not name:
            raise ValidationError("Payee name is required")
        if len(name) > MAX_PAYEE_LENGTH:
            raise ValidationError(f"Payee name must be at most {MAX_PAYEE_LENGTH} characters")
        if self.db.get_payee_by_name(name) is not None:
            raise ConflictError(f"Payee with name '{name}' already exists")
        if default_category_id is not None and self.db.get_category(default_category_id) is None:
            raise NotFoundError(category_not_found(default_category_id))

        return self.db.create_payee(
            name=name, aliases=_clean_aliases(aliases), default_category_id=default_category_id
        )

    def get_payee(self, payee_id: int) -> Optional[PayeeEntity]:
        """Get payee by ID."""
        return self.db.get_payee(payee_id)

    def list_payees(self, include_archived: bool = False) -> list[PayeeEntity]:
        """List payees ordered by name."""
        return self.db.list_payees(include_archived=include_archived)

    def add_alias(self, payee_id: int, alias: str) -> PayeeEntity:
        """Add an alternative spelling to a payee.

        Raises:
            NotFoundError: If payee not found
            ConcurrentEditError: If the payee changed since it was read
        """
        payee = self.db.get_payee(payee_id)
        if payee is None:
            raise NotFoundError(payee_not_found(payee_id))
        return self.db.update_payee(
            payee_id,
            expected_updated_at=payee.updated_at,
            aliases=_clean_aliases(payee.aliases + (alias,)),
        )

    def archive_payee(self, payee_id: int) -> None:
        """Archive a payee so the resolver stops matching it.

        Raises:
            NotFoundError: If payee not found
        """
        if self.db.get_payee(payee_id) is None:
            raise NotFoundError(payee_not_found(payee_id))
        self.db.delete_payee(payee_id)

    def guess(self, description: str) -> PayeeGuess:
        """Guess the payee behind a bank description using the known payees."""
        return guess_payee(description, self.db.list_payees())
