"""Deterministic content fingerprints used as the re-import idempotency key."""

import hashlib
from datetime import date
from typing import Union

from ledgerline.domain.entities import FingerprintedTransaction, StagedTransaction
from ledgerline.utils.text import normalize_description


def generate_fingerprint(txn_date: Union[date, str], amount_cents: int, description: str) -> str:
    """Return the SHA-256 hex digest of "YYYY-MM-DD|cents|normalized description".

    Args:
        txn_date: Transaction date (date or ISO string)
        amount_cents: Signed amount in integer cents
        description: Description text; trimmed, lower-cased and
            whitespace-collapsed before hashing

    Returns:
        64 character hex string
    """
    date_iso = txn_date.isoformat() if isinstance(txn_date, date) else txn_date
    hash_input = f"{date_iso}|{int(amount_cents)}|{normalize_description(description)}"
    return hashlib.sha256(hash_input.encode("utf-8")).hexdigest()


def add_fingerprints(staged: list[StagedTransaction]) -> list[FingerprintedTransaction]:
    """Fingerprint every valid staged transaction.

    Invalid rows are dropped here; they never take part in classification.
    """
    return [
        FingerprintedTransaction(
            staged=txn,
            fingerprint=generate_fingerprint(txn.date, txn.amount, txn.description),
        )
        for txn in staged
        if txn.is_valid
    ]
