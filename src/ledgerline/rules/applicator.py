"""Rule application against stored transactions.

A transaction moves from unmatched to matched (best rule selected) to either
applied or skipped. Reconciled transactions are never touched. Every write is
a compare-and-swap on ``updated_at`` so a concurrent edit is reported instead
of overwritten.
"""

from datetime import datetime, timezone
from typing import Sequence

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ledgerline.database.base import Database
from ledgerline.domain.entities import (
    Rule,
    RuleApplicationResult,
    RuleBatchResult,
    SplitLine,
    Transaction,
)
from ledgerline.domain.errors import CONCURRENT_EDIT_REASON, ConcurrentEditError, StorageError
from ledgerline.rules.matcher import find_matching_rules, select_best_rule

logger = structlog.get_logger()

RECONCILED_REASON = "Transaction is reconciled"
REVIEWED_REASON = "Transaction already reviewed"
NO_MATCH_REASON = "No matching rules"

SKIP_REASONS = frozenset({RECONCILED_REASON, REVIEWED_REASON, NO_MATCH_REASON})


def apply_rule_to_transaction(
    db: Database,
    transaction: Transaction,
    rule: Rule,
    override_reviewed: bool = False,
    set_reviewed: bool = True,
) -> RuleApplicationResult:
    """Apply one rule to one transaction.

    The transaction's lines are replaced by a single line for the full amount
    in the rule's category, which discards any existing split.

    Args:
        db: Database instance
        transaction: Transaction as last read, its ``updated_at`` is the
            write precondition
        rule: Rule to apply
        override_reviewed: Apply even if the transaction was already reviewed
        set_reviewed: Mark the transaction reviewed after applying

    Returns:
        RuleApplicationResult describing what happened
    """
    if transaction.reconciled:
        return RuleApplicationResult(
            transaction_id=transaction.id, applied=False, reason=RECONCILED_REASON
        )

    if transaction.is_reviewed and not override_reviewed:
        return RuleApplicationResult(
            transaction_id=transaction.id, applied=False, reason=REVIEWED_REASON
        )

    if transaction.is_split:
        logger.warning(
            "split_collapsed_by_rule",
            transaction_id=transaction.id,
            rule_id=rule.id,
            line_count=len(transaction.lines),
        )

    changes = {
        "lines": (SplitLine(amount=transaction.amount, category_id=rule.target_category_id),),
        "is_split": False,
    }
    if rule.suggested_payee:
        changes["payee"] = rule.suggested_payee
    if set_reviewed:
        changes["is_reviewed"] = True

    try:
        db.update_transaction(
            transaction.id, expected_updated_at=transaction.updated_at, **changes
        )
    except ConcurrentEditError:
        logger.info("rule_apply_conflict", transaction_id=transaction.id, rule_id=rule.id)
        return RuleApplicationResult(
            transaction_id=transaction.id,
            applied=False,
            reason=CONCURRENT_EDIT_REASON,
            conflict=True,
        )
    except StorageError as e:
        logger.warning(
            "rule_apply_failed", transaction_id=transaction.id, rule_id=rule.id, error=str(e)
        )
        return RuleApplicationResult(transaction_id=transaction.id, applied=False, reason=str(e))

    try:
        db.record_rule_use(rule.id, datetime.now(timezone.utc))
    except (StorageError, SQLAlchemyError) as e:
        logger.warning("rule_stats_update_failed", rule_id=rule.id, error=str(e))

    return RuleApplicationResult(
        transaction_id=transaction.id,
        applied=True,
        matched_rule=rule,
        previous_category_id=transaction.primary_category_id,
    )


def apply_rules_to_transaction(
    db: Database,
    transaction: Transaction,
    rules: Sequence[Rule],
    override_reviewed: bool = False,
    set_reviewed: bool = True,
) -> RuleApplicationResult:
    """Find the best matching rule and apply it."""
    best = select_best_rule(find_matching_rules(transaction, rules))
    if best is None:
        return RuleApplicationResult(
            transaction_id=transaction.id, applied=False, reason=NO_MATCH_REASON
        )
    return apply_rule_to_transaction(
        db, transaction, best, override_reviewed=override_reviewed, set_reviewed=set_reviewed
    )


def apply_rules_to_batch(
    db: Database,
    transactions: Sequence[Transaction],
    rules: Sequence[Rule],
    override_reviewed: bool = False,
    set_reviewed: bool = True,
) -> RuleBatchResult:
    """Apply rules to transactions one at a time and aggregate the outcome.

    Applied results count as applied; reconciled, reviewed and unmatched
    transactions count as skipped; conflicts and storage failures count as
    errors.
    """
    results = []
    applied = skipped = errors = 0

    for transaction in transactions:
        result = apply_rules_to_transaction(
            db,
            transaction,
            rules,
            override_reviewed=override_reviewed,
            set_reviewed=set_reviewed,
        )
        results.append(result)

        if result.applied:
            applied += 1
        elif result.reason in SKIP_REASONS:
            skipped += 1
        else:
            errors += 1

    logger.info(
        "rule_batch_applied",
        total=len(transactions),
        applied=applied,
        skipped=skipped,
        errors=errors,
    )
    return RuleBatchResult(
        total_transactions=len(transactions),
        applied_count=applied,
        skipped_count=skipped,
        error_count=errors,
        results=results,
    )
