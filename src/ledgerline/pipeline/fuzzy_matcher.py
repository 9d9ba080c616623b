"""Fuzzy duplicate detection for rows that passed the exact check.

Re-exported statements often move a transaction by a day or two between the
pending and posted snapshot, which changes the fingerprint. Rows with the same
amount, a nearby date and a similar description are flagged for the user.
"""

from dataclasses import replace
from typing import Optional

from rapidfuzz import fuzz

from ledgerline.domain.entities import ProcessedTransaction, Transaction
from ledgerline.pipeline.context import ImportContext
from ledgerline.utils.text import normalize_description


def description_similarity(left: str, right: str) -> float:
    """Similarity of two descriptions on a 0-100 scale.

    The larger of the token-set ratio (word overlap, order-insensitive) and
    the plain edit-distance ratio.
    """
    a = normalize_description(left)
    b = normalize_description(right)
    if not a or not b:
        return 0.0
    return max(fuzz.token_set_ratio(a, b), fuzz.ratio(a, b))


def find_fuzzy_match(
    txn: ProcessedTransaction,
    candidates: list[Transaction],
    context: ImportContext,
    claimed: Optional[set[int]] = None,
) -> Optional[tuple[Transaction, float]]:
    """Find the best existing transaction that looks like a re-import of ``txn``.

    Returns:
        (transaction, similarity) for the closest date, then highest
        similarity, then lowest ID; or None
    """
    settings = context.settings
    best: Optional[tuple[int, float, int, Transaction]] = None

    for existing in candidates:
        if existing.is_archived or existing.account_id != context.account_id:
            continue
        if claimed and existing.id in claimed:
            continue
        if existing.amount != txn.amount:
            continue
        days_apart = abs((existing.date - txn.date).days)
        if days_apart > settings.fuzzy_date_window_days:
            continue
        similarity = description_similarity(txn.description, existing.description)
        if similarity < settings.fuzzy_similarity_threshold:
            continue

        key = (days_apart, -similarity, existing.id)
        if best is None or key < best[:3]:
            best = (days_apart, -similarity, existing.id, existing)

    if best is None:
        return None
    return best[3], -best[1]


def detect_fuzzy_duplicates(
    processed: list[ProcessedTransaction], context: ImportContext
) -> list[ProcessedTransaction]:
    """Mark probable re-imports among the ``new`` rows as ``fuzzy_duplicate``.

    Classification only: neither record is changed. Each existing
    transaction backs at most one incoming row.
    """
    claimed = {p.duplicate_of_id for p in processed if p.duplicate_of_id is not None}
    result = []

    for txn in processed:
        if txn.status != "new":
            result.append(txn)
            continue

        match = find_fuzzy_match(txn, context.existing_transactions, context, claimed)
        if match is None:
            result.append(txn)
            continue

        existing, similarity = match
        claimed.add(existing.id)
        result.append(
            replace(
                txn,
                status="fuzzy_duplicate",
                duplicate_of_id=existing.id,
                similarity=round(similarity, 1),
            )
        )

    return result
