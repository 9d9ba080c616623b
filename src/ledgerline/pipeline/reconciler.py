"""Exact duplicate detection by fingerprint."""

from ledgerline.domain.entities import FingerprintedTransaction, ProcessedTransaction
from ledgerline.pipeline.context import ImportContext


def detect_exact_duplicates(
    incoming: list[FingerprintedTransaction], context: ImportContext
) -> list[ProcessedTransaction]:
    """Classify each row as ``duplicate`` or ``new``.

    A row is a duplicate when its fingerprint is already stored for the
    account, or when an earlier row of the same file has the same fingerprint
    (``duplicate_of_id`` is None in that case).
    """
    seen_in_file: set[str] = set()
    processed = []

    for txn in incoming:
        existing_id = context.existing_fingerprints.get(txn.fingerprint)
        if existing_id is not None:
            processed.append(
                ProcessedTransaction(
                    staged=txn.staged,
                    fingerprint=txn.fingerprint,
                    status="duplicate",
                    duplicate_of_id=existing_id,
                )
            )
        elif txn.fingerprint in seen_in_file:
            processed.append(
                ProcessedTransaction(staged=txn.staged, fingerprint=txn.fingerprint, status="duplicate")
            )
        else:
            processed.append(
                ProcessedTransaction(staged=txn.staged, fingerprint=txn.fingerprint, status="new")
            )
        seen_in_file.add(txn.fingerprint)

    return processed
