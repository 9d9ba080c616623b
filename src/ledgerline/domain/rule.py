"""Categorization rule domain service."""

from datetime import datetime
from typing import Any, Optional, Sequence

import structlog

from ledgerline.database.base import Database
from ledgerline.domain.entities import MATCH_TYPES, Rule as RuleEntity, RuleBatchResult
from ledgerline.domain.errors import (
    NotFoundError,
    ValidationError,
    category_not_found,
    rule_not_found,
)
from ledgerline.rules.applicator import apply_rules_to_batch
from ledgerline.rules.conditions import conditions_to_data, parse_conditions
from ledgerline.rules.safe_regex import validate_regex_pattern
from ledgerline.utils.text import MAX_PAYEE_LENGTH

logger = structlog.get_logger()

MIN_PRIORITY = 1
MAX_PRIORITY = 100
DEFAULT_PRIORITY = 50
MAX_KEYWORD_LENGTH = 200


def normalize_keyword(keyword: str, match_type: str, case_sensitive: bool) -> str:
    """Validate a keyword and fold it for storage.

    Keywords of case-insensitive rules are stored lower-cased. Regex
    patterns are never folded because case changes their meaning (``\\D``
    versus ``\\d``); they match with IGNORECASE instead.

    Raises:
        ValidationError: If the keyword is empty, too long or an unsafe regex
    """
    keyword = keyword.strip()
    if not keyword:
        raise ValidationError("Keyword is required")
    if len(keyword) > MAX_KEYWORD_LENGTH:
        raise ValidationError(f"Keyword must be at most {MAX_KEYWORD_LENGTH} characters")

    if match_type == "regex":
        error = validate_regex_pattern(keyword)
        if error:
            raise ValidationError(error)
        return keyword

    return keyword if case_sensitive else keyword.lower()


def validate_match_type(match_type: str) -> None:
    if match_type not in MATCH_TYPES:
        raise ValidationError(
            f"Invalid match type '{match_type}'. Must be one of: {', '.join(MATCH_TYPES)}"
        )


def validate_priority(priority: int) -> None:
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ValidationError("Priority must be an integer")
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise ValidationError(f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}")


class RuleService:
    """Service for managing and applying categorization rules."""

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_category(self, category_id: int) -> None:
        category = self.db.get_category(category_id)
        if category is None or category.is_archived:
            raise NotFoundError(category_not_found(category_id))

    def _require_rule(self, rule_id: int) -> RuleEntity:
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        return rule

    def create_rule(
        self,
        keyword: str,
        target_category_id: int,
        match_type: str = "contains",
        priority: int = DEFAULT_PRIORITY,
        case_sensitive: bool = False,
        suggested_payee: Optional[str] = None,
        conditions: Optional[Sequence[Any]] = None,
        is_enabled: bool = True,
    ) -> int:
        """Create a rule.

        Args:
            keyword: Text (or regex) to look for in the bank description
            target_category_id: Category assigned when the rule applies
            match_type: contains, exact, startsWith or regex
            priority: 1-100, higher wins when several rules match
            case_sensitive: Match case exactly
            suggested_payee: Payee text set when the rule applies
            conditions: Extra predicates, as tagged dictionaries or condition objects
            is_enabled: Whether the rule participates in matching

        Returns:
            Rule ID

        Raises:
            ValidationError: If any field is invalid
            NotFoundError: If the target category doesn't exist
        """
        validate_match_type(match_type)
        keyword = normalize_keyword(keyword, match_type, case_sensitive)
        validate_priority(priority)
        parsed = parse_conditions(list(conditions) if conditions else None)
        if suggested_payee is not None:
            suggested_payee = suggested_payee.strip()[:MAX_PAYEE_LENGTH] or None
        self._require_category(target_category_id)

        rule_id = self.db.create_rule(
            keyword=keyword,
            match_type=match_type,
            target_category_id=target_category_id,
            priority=priority,
            case_sensitive=case_sensitive,
            suggested_payee=suggested_payee,
            conditions=conditions_to_data(parsed),
            is_enabled=is_enabled,
        )
        logger.info("rule_created", rule_id=rule_id, match_type=match_type, priority=priority)
        return rule_id

    def get_rule(self, rule_id: int) -> Optional[RuleEntity]:
        """Get rule by ID."""
        return self.db.get_rule(rule_id)

    def list_rules(self, enabled_only: bool = False) -> list[RuleEntity]:
        """List rules, highest priority first."""
        return self.db.list_rules(enabled_only=enabled_only)

    def update_rule(
        self,
        rule_id: int,
        expected_updated_at: Optional[datetime] = None,
        **changes: Any,
    ) -> RuleEntity:
        """Update a rule with optimistic locking.

        Args:
            rule_id: Rule ID
            expected_updated_at: ``updated_at`` of the copy being edited; defaults
                to the stored value
            **changes: Rule fields to change

        Raises:
            NotFoundError: If rule or target category not found
            ValidationError: If a changed field is invalid
            ConcurrentEditError: If the rule changed since it was read
        """
        rule = self._require_rule(rule_id)
        if expected_updated_at is None:
            expected_updated_at = rule.updated_at

        match_type = changes.get("match_type", rule.match_type)
        case_sensitive = changes.get("case_sensitive", rule.case_sensitive)
        validate_match_type(match_type)

        if {"keyword", "match_type", "case_sensitive"} & changes.keys():
            changes["keyword"] = normalize_keyword(
                changes.get("keyword", rule.keyword), match_type, case_sensitive
            )
        if "priority" in changes:
            validate_priority(changes["priority"])
        if "conditions" in changes:
            changes["conditions"] = conditions_to_data(parse_conditions(changes["conditions"])) or None
        if "target_category_id" in changes:
            self._require_category(changes["target_category_id"])

        return self.db.update_rule(rule_id, expected_updated_at=expected_updated_at, **changes)

    def set_enabled(self, rule_id: int, enabled: bool) -> RuleEntity:
        """Enable or disable a rule."""
        return self.update_rule(rule_id, is_enabled=enabled)

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule permanently.

        Raises:
            NotFoundError: If rule not found
        """
        self._require_rule(rule_id)
        self.db.delete_rule(rule_id)
        logger.info("rule_deleted", rule_id=rule_id)

    def apply_rules(
        self,
        account_id: Optional[int] = None,
        transaction_ids: Optional[Sequence[int]] = None,
        override_reviewed: bool = False,
        set_reviewed: bool = True,
    ) -> RuleBatchResult:
        """Run the enabled rules over stored transactions.

        Args:
            account_id: Restrict to one account
            transaction_ids: Restrict to these transactions
            override_reviewed: Also re-categorize reviewed transactions
            set_reviewed: Mark categorized transactions reviewed

        Returns:
            Aggregated batch result
        """
        if transaction_ids is not None:
            transactions = [
                txn
                for txn in (self.db.get_transaction(tid) for tid in transaction_ids)
                if txn is not None and not txn.is_archived
            ]
        else:
            transactions = self.db.list_transactions(
                account_id=account_id, unreviewed_only=not override_reviewed
            )
            transactions.reverse()

        rules = self.db.list_rules(enabled_only=True)
        return apply_rules_to_batch(
            self.db,
            transactions,
            rules,
            override_reviewed=override_reviewed,
            set_reviewed=set_reviewed,
        )
