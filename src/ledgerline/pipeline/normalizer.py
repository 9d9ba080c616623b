"""Row normalizer: raw statement rows to staged transactions."""

import csv
from pathlib import Path
from typing import Optional

from ledgerline.domain.entities import AMOUNT_MODES, CsvMapping, StagedTransaction
from ledgerline.domain.errors import ValidationError
from ledgerline.utils.amount_parser import parse_amount_cents
from ledgerline.utils.date_parser import parse_formatted_date, to_strptime_format
from ledgerline.utils.text import MAX_DESCRIPTION_LENGTH, sanitize_text

MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_ROWS = 50_000

BANK_PROFILES: dict[str, CsvMapping] = {
    "CHASE_CHECKING": CsvMapping(
        date_column="Posting Date",
        amount_column="Amount",
        description_column="Description",
        date_format="MM/dd/yyyy",
    ),
    "AMEX": CsvMapping(
        date_column="Date",
        amount_column="",
        description_column="Description",
        date_format="MM/dd/yyyy",
        amount_mode="separate",
        inflow_column="Credits",
        outflow_column="Charges",
    ),
    "BANK_OF_AMERICA": CsvMapping(
        date_column="Date",
        amount_column="Amount",
        description_column="Description",
        date_format="MM/dd/yyyy",
    ),
    "WELLS_FARGO": CsvMapping(
        date_column="Date",
        amount_column="Amount",
        description_column="Description",
        date_format="MM/dd/yyyy",
    ),
}


def get_bank_profile(name: str) -> Optional[CsvMapping]:
    """Get a built-in mapping by profile name (case-insensitive)."""
    return BANK_PROFILES.get(name.upper())


def validate_mapping(mapping: CsvMapping) -> None:
    """Check that a mapping is complete for its amount mode.

    Raises:
        ValidationError: If the mapping cannot be used to normalize rows
    """
    if mapping.amount_mode not in AMOUNT_MODES:
        raise ValidationError(
            f"Invalid amount mode '{mapping.amount_mode}'. Must be one of: {', '.join(AMOUNT_MODES)}"
        )
    if not mapping.date_column:
        raise ValidationError("Mapping requires a date column")
    if not mapping.description_column:
        raise ValidationError("Mapping requires a description column")
    if mapping.amount_mode == "signed" and not mapping.amount_column:
        raise ValidationError("Signed amount mode requires an amount column")
    if mapping.amount_mode == "separate" and not (mapping.inflow_column and mapping.outflow_column):
        raise ValidationError("Separate amount mode requires both inflow and outflow columns")
    try:
        to_strptime_format(mapping.date_format)
    except ValueError as e:
        raise ValidationError(str(e))


def read_csv_rows(csv_file_path: str, has_header_row: bool = True) -> list[dict[str, str]]:
    """Read a statement export into a list of string-keyed rows.

    Without a header row, columns are keyed by their index ("0", "1", ...).

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationError: If the file is too large or has too many rows
    """
    csv_path = Path(csv_file_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_file_path}")
    if csv_path.stat().st_size > MAX_FILE_SIZE:
        raise ValidationError(
            f"File too large. Maximum size is {MAX_FILE_SIZE // (1024 * 1024)}MB."
        )

    rows: list[dict[str, str]] = []
    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            delimiter = ","

        reader = csv.reader(f, delimiter=delimiter)
        header: Optional[list[str]] = None
        for values in reader:
            if not any(v.strip() for v in values):
                continue
            if has_header_row and header is None:
                header = [h.strip() or "__empty__" for h in values]
                continue
            if len(rows) >= MAX_ROWS:
                raise ValidationError(f"File has more than {MAX_ROWS} rows")
            if header is not None:
                # Short rows simply lack the trailing columns
                rows.append({name: value for name, value in zip(header, values)})
            else:
                rows.append({str(i): value for i, value in enumerate(values)})
    return rows


def _parse_separate_amount(raw_inflow: str, raw_outflow: str, errors: list[str]) -> Optional[int]:
    inflow = outflow = 0
    try:
        if raw_inflow.strip():
            inflow = abs(parse_amount_cents(raw_inflow))
    except ValueError:
        errors.append(f'Invalid inflow amount: "{raw_inflow}"')
        return None
    try:
        if raw_outflow.strip():
            outflow = abs(parse_amount_cents(raw_outflow))
    except ValueError:
        errors.append(f'Invalid outflow amount: "{raw_outflow}"')
        return None

    if inflow and outflow:
        errors.append("Both inflow and outflow columns have a value")
        return None
    if inflow:
        return inflow
    if outflow:
        return -outflow
    errors.append("Missing amount in both inflow and outflow columns")
    return None


def normalize_row(row: dict[str, str], mapping: CsvMapping, row_index: int) -> StagedTransaction:
    """Transform one raw row into a StagedTransaction.

    Invalid rows are still returned (``is_valid=False`` with reasons) so they
    can be shown to the user; they are never committed.
    """
    missing = [column for column in mapping.required_columns() if column not in row]
    if missing:
        return StagedTransaction(
            row_index=row_index,
            raw_row=row,
            is_valid=False,
            errors=tuple(f"Missing column '{column}'" for column in missing),
        )

    errors: list[str] = []

    raw_date = (row[mapping.date_column] or "").strip()
    txn_date = None
    if not raw_date:
        errors.append("Date is required")
    else:
        try:
            txn_date = parse_formatted_date(raw_date, mapping.date_format)
        except ValueError:
            errors.append(f'Invalid date: "{raw_date}" (expected format: {mapping.date_format})')

    amount = None
    if mapping.amount_mode == "separate":
        amount = _parse_separate_amount(
            row[mapping.inflow_column] or "", row[mapping.outflow_column] or "", errors
        )
    else:
        raw_amount = (row[mapping.amount_column] or "").strip()
        if not raw_amount:
            errors.append("Amount is required")
        else:
            try:
                amount = parse_amount_cents(raw_amount)
            except ValueError:
                errors.append(f'Invalid amount: "{raw_amount}"')

    raw_description = row[mapping.description_column] or ""
    description = None
    if not raw_description.strip():
        errors.append("Missing description")
    else:
        description = sanitize_text(raw_description, MAX_DESCRIPTION_LENGTH)
        if not description:
            errors.append("Description is empty after sanitization")
            description = None

    return StagedTransaction(
        row_index=row_index,
        raw_row=row,
        is_valid=not errors,
        errors=tuple(errors),
        date=txn_date,
        amount=amount,
        description=description,
    )


def normalize_rows(rows: list[dict[str, str]], mapping: CsvMapping) -> list[StagedTransaction]:
    """Normalize every row of a file, keeping input order.

    Raises:
        ValidationError: If the mapping itself is invalid
    """
    validate_mapping(mapping)
    return [normalize_row(row, mapping, index) for index, row in enumerate(rows)]
