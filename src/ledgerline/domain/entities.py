"""Domain model entities for ledgerline.

These are pure data classes representing business concepts, independent of
database schema. The import pipeline passes them between stages; the
database layer converts ORM rows into them via the mappers.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Any, Optional

# Supported values for string-typed enumerations
AMOUNT_MODES = ("signed", "separate")
DATE_FORMATS = ("MM/dd/yyyy", "dd/MM/yyyy", "yyyy-MM-dd", "MM-dd-yyyy")
MATCH_TYPES = ("contains", "exact", "startsWith", "regex")
IMPORT_STATUSES = ("new", "duplicate", "fuzzy_duplicate")


@dataclass(frozen=True)
class CsvMapping:
    """Column mapping configuration for one bank export layout."""

    date_column: str
    amount_column: str
    description_column: str
    date_format: str = "MM/dd/yyyy"
    has_header_row: bool = True
    amount_mode: str = "signed"
    inflow_column: Optional[str] = None
    outflow_column: Optional[str] = None

    def required_columns(self) -> list[str]:
        """Columns that must be present in every row for this mapping."""
        columns = [self.date_column, self.description_column]
        if self.amount_mode == "separate":
            columns.extend(c for c in (self.inflow_column, self.outflow_column) if c)
        else:
            columns.append(self.amount_column)
        return columns

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the external camelCase keys."""
        data: dict[str, Any] = {
            "dateColumn": self.date_column,
            "amountColumn": self.amount_column,
            "descriptionColumn": self.description_column,
            "dateFormat": self.date_format,
            "hasHeaderRow": self.has_header_row,
            "amountMode": self.amount_mode,
        }
        if self.inflow_column is not None:
            data["inflowColumn"] = self.inflow_column
        if self.outflow_column is not None:
            data["outflowColumn"] = self.outflow_column
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CsvMapping":
        """Build a mapping from its camelCase dictionary form."""
        return cls(
            date_column=data.get("dateColumn", ""),
            amount_column=data.get("amountColumn", ""),
            description_column=data.get("descriptionColumn", ""),
            date_format=data.get("dateFormat", "MM/dd/yyyy"),
            has_header_row=bool(data.get("hasHeaderRow", True)),
            amount_mode=data.get("amountMode", "signed"),
            inflow_column=data.get("inflowColumn"),
            outflow_column=data.get("outflowColumn"),
        )


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    name: str
    bank_name: str
    created_at: datetime
    updated_at: datetime
    csv_mapping: Optional[CsvMapping] = None
    is_archived: bool = False


@dataclass(frozen=True)
class Category:
    """Category domain entity with hierarchical structure."""

    id: int
    name: str
    parent_id: Optional[int]
    created_at: datetime
    is_archived: bool = False


@dataclass(frozen=True)
class Payee:
    """Known payee used by the payee resolver."""

    id: int
    name: str
    aliases: tuple[str, ...] = ()
    default_category_id: Optional[int] = None
    is_archived: bool = False
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class SplitLine:
    """One category allocation of a transaction amount."""

    amount: int
    category_id: Optional[int] = None
    memo: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"category_id": self.category_id, "amount": self.amount, "memo": self.memo}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SplitLine":
        return cls(
            amount=int(data["amount"]),
            category_id=data.get("category_id"),
            memo=data.get("memo") or "",
        )


@dataclass(frozen=True)
class Transaction:
    """Ledger entry domain entity. Amounts are signed integer cents."""

    id: int
    account_id: int
    date: date
    amount: int
    description: str
    fingerprint: str
    lines: tuple[SplitLine, ...]
    imported_at: datetime
    updated_at: datetime
    payee: Optional[str] = None
    payee_id: Optional[int] = None
    source_batch_id: Optional[int] = None
    is_split: bool = False
    is_reviewed: bool = False
    reconciled: bool = False
    is_archived: bool = False

    @property
    def primary_category_id(self) -> Optional[int]:
        """Category of the first line, if any."""
        if not self.lines:
            return None
        return self.lines[0].category_id

    def lines_balance(self) -> bool:
        """Check that the split lines add up to the transaction amount."""
        return sum(line.amount for line in self.lines) == self.amount


@dataclass(frozen=True)
class ImportBatch:
    """One committed import, with its own undo flag."""

    id: int
    account_id: int
    file_name: str
    imported_at: datetime
    total_rows: int
    imported_count: int
    duplicate_count: int
    error_count: int
    csv_mapping_snapshot: Optional[dict[str, Any]] = None
    is_undone: bool = False
    undone_at: Optional[datetime] = None


@dataclass(frozen=True)
class Rule:
    """Categorization rule domain entity.

    ``conditions`` holds typed predicates from ``ledgerline.rules.conditions``.
    """

    id: int
    keyword: str
    match_type: str
    target_category_id: int
    priority: int
    created_at: datetime
    updated_at: datetime
    case_sensitive: bool = False
    suggested_payee: Optional[str] = None
    conditions: tuple[Any, ...] = ()
    is_enabled: bool = True
    use_count: int = 0
    last_used_at: Optional[datetime] = None


# Pipeline records


@dataclass(frozen=True)
class StagedTransaction:
    """A normalized row that has not been persisted."""

    row_index: int
    raw_row: dict[str, str]
    is_valid: bool
    errors: tuple[str, ...] = ()
    date: Optional[date] = None
    amount: Optional[int] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class FingerprintedTransaction:
    """A valid staged transaction with its fingerprint attached."""

    staged: StagedTransaction
    fingerprint: str


@dataclass(frozen=True)
class ProcessedTransaction:
    """A fingerprinted row with its duplicate classification."""

    staged: StagedTransaction
    fingerprint: str
    status: str
    duplicate_of_id: Optional[int] = None
    similarity: Optional[float] = None

    @property
    def date(self) -> date:
        return self.staged.date

    @property
    def amount(self) -> int:
        return self.staged.amount

    @property
    def description(self) -> str:
        return self.staged.description

    @property
    def row_index(self) -> int:
        return self.staged.row_index


@dataclass(frozen=True)
class NewImportBatch:
    """Batch metadata passed to the atomic commit."""

    account_id: int
    file_name: str
    total_rows: int
    imported_count: int
    duplicate_count: int
    error_count: int
    csv_mapping_snapshot: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class NewTransaction:
    """Transaction payload passed to the atomic commit."""

    date: date
    amount: int
    description: str
    fingerprint: str
    payee: Optional[str] = None


@dataclass(frozen=True)
class CommitResult:
    """Identifiers generated by an atomic commit."""

    batch_id: int
    transaction_ids: list[int]


@dataclass(frozen=True)
class RuleApplicationResult:
    """Outcome of trying to apply rules to one transaction."""

    transaction_id: int
    applied: bool
    matched_rule: Optional[Rule] = None
    previous_category_id: Optional[int] = None
    reason: Optional[str] = None
    conflict: bool = False


@dataclass(frozen=True)
class RuleBatchResult:
    """Aggregated outcome of a sequential rule batch."""

    total_transactions: int
    applied_count: int
    skipped_count: int
    error_count: int
    results: list[RuleApplicationResult] = field(default_factory=list)


@dataclass(frozen=True)
class PayeeGuess:
    """Resolver output. Confidence is 0-100."""

    payee: Optional[Payee]
    confidence: int
    suggested_name: Optional[str] = None


@dataclass(frozen=True)
class UndoResult:
    """Outcome of undoing an import batch."""

    batch_id: int
    archived_count: int
    already_undone: bool = False
