"""Categorization rule engine."""

from ledgerline.rules.applicator import (
    apply_rule_to_transaction,
    apply_rules_to_batch,
    apply_rules_to_transaction,
)
from ledgerline.rules.conditions import parse_condition, parse_conditions
from ledgerline.rules.matcher import find_matching_rules, matches_rule, select_best_rule
from ledgerline.rules.safe_regex import safe_regex_search, validate_regex_pattern

__all__ = [
    "apply_rule_to_transaction",
    "apply_rules_to_batch",
    "apply_rules_to_transaction",
    "parse_condition",
    "parse_conditions",
    "find_matching_rules",
    "matches_rule",
    "select_best_rule",
    "safe_regex_search",
    "validate_regex_pattern",
]
