"""CSV mapping domain service.

A mapping tells the normalizer which columns hold the date, amount and
description of a bank export. It comes from (in order of precedence) an
explicit mapping, a built-in bank profile, or the mapping remembered on the
account from its last import.
"""

from typing import Optional
from ledgerline.database.base import Database
from ledgerline.domain.entities import CsvMapping
from ledgerline.domain.errors import NotFoundError, ValidationError, account_not_found
from ledgerline.pipeline.normalizer import BANK_PROFILES, get_bank_profile, validate_mapping


class CsvMappingService:
    """Service for resolving and remembering CSV mappings."""

    def __init__(self, db: Database):
        """Initialize CSV mapping service.

        Args:
            db: Database instance
        """
        self.db = db

    def list_profiles(self) -> list[str]:
        """Names of the built-in bank profiles."""
        return sorted(BANK_PROFILES)

    def get_profile(self, name: str) -> CsvMapping:
        """Get a built-in bank profile.

        Raises:
            NotFoundError: If no profile has that name
        """
        mapping = get_bank_profile(name)
        if mapping is None:
            raise NotFoundError(
                f"Bank profile '{name}' not found. Available: {', '.join(self.list_profiles())}"
            )
        return mapping

    def build_mapping(
        self,
        date_column: str,
        description_column: str,
        amount_column: Optional[str] = None,
        date_format: str = "MM/dd/yyyy",
        has_header_row: bool = True,
        inflow_column: Optional[str] = None,
        outflow_column: Optional[str] = None,
    ) -> CsvMapping:
        """Build and validate a mapping from column names.

        Separate amount mode is selected when inflow and outflow columns are
        given instead of an amount column.

        Raises:
            ValidationError: If the mapping is incomplete or ambiguous
        """
        if amount_column and (inflow_column or outflow_column):
            raise ValidationError("Use either an amount column or inflow/outflow columns, not both")

        mapping = CsvMapping(
            date_column=date_column,
            amount_column=amount_column or "",
            description_column=description_column,
            date_format=date_format,
            has_header_row=has_header_row,
            amount_mode="separate" if (inflow_column or outflow_column) else "signed",
            inflow_column=inflow_column,
            outflow_column=outflow_column,
        )
        validate_mapping(mapping)
        return mapping

    def resolve_mapping(
        self,
        account_id: int,
        mapping: Optional[CsvMapping] = None,
        profile: Optional[str] = None,
    ) -> CsvMapping:
        """Pick the mapping for an import into ``account_id``.

        Raises:
            NotFoundError: If the account or profile doesn't exist
            ValidationError: If no mapping is available
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        if mapping is not None:
            validate_mapping(mapping)
            return mapping
        if profile is not None:
            return self.get_profile(profile)
        if account.csv_mapping is not None:
            return account.csv_mapping

        raise ValidationError(
            f"No CSV mapping for account '{account.name}'. "
            "Pass a bank profile or the column names."
        )
