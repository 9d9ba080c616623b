"""Transaction ingestion pipeline stages."""

from ledgerline.pipeline.context import ImportContext
from ledgerline.pipeline.normalizer import normalize_row, normalize_rows, read_csv_rows, validate_mapping
from ledgerline.pipeline.fingerprint import add_fingerprints, generate_fingerprint
from ledgerline.pipeline.reconciler import detect_exact_duplicates
from ledgerline.pipeline.fuzzy_matcher import detect_fuzzy_duplicates
from ledgerline.pipeline.payee_resolver import guess_payee

__all__ = [
    "ImportContext",
    "normalize_row",
    "normalize_rows",
    "read_csv_rows",
    "validate_mapping",
    "add_fingerprints",
    "generate_fingerprint",
    "detect_exact_duplicates",
    "detect_fuzzy_duplicates",
    "guess_payee",
]
