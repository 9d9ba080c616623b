"""Rule matching: which rules apply to a transaction, and which one wins."""

import re
from datetime import date
from typing import Optional, Sequence

from ledgerline.domain.entities import Rule, Transaction
from ledgerline.rules.safe_regex import safe_regex_search

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str, case_sensitive: bool) -> str:
    """Trim, collapse whitespace and fold case unless ``case_sensitive``."""
    normalized = _WHITESPACE.sub(" ", text.strip())
    return normalized if case_sensitive else normalized.lower()


def basic_match(description: str, rule: Rule) -> bool:
    """Test the rule's keyword against the description for its match type."""
    if rule.match_type == "regex":
        return safe_regex_search(rule.keyword, description, case_sensitive=rule.case_sensitive)

    text = normalize_text(description, rule.case_sensitive)
    keyword = normalize_text(rule.keyword, rule.case_sensitive)

    if rule.match_type == "contains":
        return keyword in text
    if rule.match_type == "exact":
        return text == keyword
    if rule.match_type == "startsWith":
        return text.startswith(keyword)
    return False


def matches_rule(description: str, amount: int, txn_date: date, rule: Rule) -> bool:
    """Return True if the keyword matches and every condition holds."""
    if not basic_match(description, rule):
        return False
    return all(condition.matches(amount, txn_date, description) for condition in rule.conditions)


def find_matching_rules(transaction: Transaction, rules: Sequence[Rule]) -> list[Rule]:
    """Return enabled rules matching the transaction, highest priority first.

    The sort is stable, so rules of equal priority keep their input order.
    """
    matches = [
        rule
        for rule in rules
        if rule.is_enabled
        and matches_rule(transaction.description, transaction.amount, transaction.date, rule)
    ]
    return sorted(matches, key=lambda rule: rule.priority, reverse=True)


def select_best_rule(matches: Sequence[Rule]) -> Optional[Rule]:
    """Pick the winning rule from a priority-sorted match list."""
    if not matches:
        return None
    return matches[0]
