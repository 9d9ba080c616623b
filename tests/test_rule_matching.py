"""Tests for rule conditions, guarded regexes and rule matching."""

from datetime import date

import pytest

from ledgerline.domain.errors import ValidationError
from ledgerline.rules.conditions import (
    AmountRange,
    DateRange,
    DayOfMonthRange,
    DescriptionRegex,
    MonthRange,
    conditions_to_data,
    parse_condition,
    parse_conditions,
)
from ledgerline.rules.matcher import (
    basic_match,
    find_matching_rules,
    matches_rule,
    normalize_text,
    select_best_rule,
)
from ledgerline.rules.safe_regex import safe_regex_search, validate_regex_pattern


class TestSafeRegex:
    def test_valid_pattern(self):
        assert validate_regex_pattern(r"^AMZN\s+MKTP") is None
        assert safe_regex_search(r"^amzn", "AMZN MKTP US")

    def test_case_sensitivity(self):
        assert not safe_regex_search(r"^amzn", "AMZN MKTP", case_sensitive=True)

    def test_nested_quantifier_rejected(self):
        assert "nested quantifiers" in validate_regex_pattern(r"(a+)+$")
        assert not safe_regex_search(r"(a+)+$", "aaaaaaaaaaaaaaaaaaaaaaaaaaaa!")

    def test_invalid_pattern_does_not_match(self):
        assert validate_regex_pattern("[unclosed").startswith("Invalid regex pattern")
        assert not safe_regex_search("[unclosed", "[unclosed")

    def test_long_pattern_rejected(self):
        assert "too long" in validate_regex_pattern("a" * 501)


class TestConditions:
    def test_amount_range_uses_absolute_value(self):
        condition = AmountRange(min_cents=1000, max_cents=5000)

        assert condition.matches(-2500, date(2024, 1, 1), "")
        assert condition.matches(1000, date(2024, 1, 1), "")
        assert not condition.matches(-999, date(2024, 1, 1), "")
        assert not condition.matches(5001, date(2024, 1, 1), "")

    def test_month_and_day_ranges(self):
        assert MonthRange(11, 12).matches(0, date(2024, 12, 3), "")
        assert not MonthRange(11, 12).matches(0, date(2024, 1, 3), "")
        assert DayOfMonthRange(1, 5).matches(0, date(2024, 2, 5), "")
        assert not DayOfMonthRange(1, 5).matches(0, date(2024, 2, 6), "")

    def test_date_range(self):
        condition = DateRange(start=date(2024, 1, 1), end=date(2024, 6, 30))

        assert condition.matches(0, date(2024, 6, 30), "")
        assert not condition.matches(0, date(2024, 7, 1), "")

    def test_description_regex(self):
        assert DescriptionRegex(r"\bstore\s+\d+").matches(0, date(2024, 1, 1), "STARBUCKS STORE 12")

    def test_parse_round_trip(self):
        data = [
            {"type": "amount_range", "min_cents": 500, "max_cents": None},
            {"type": "month_range", "start_month": 11, "end_month": 12},
            {"type": "date_range", "start": "2024-01-01", "end": None},
        ]

        parsed = parse_conditions(data)

        assert parsed[0] == AmountRange(500, None)
        assert parsed[2] == DateRange(date(2024, 1, 1), None)
        assert conditions_to_data(parsed) == data

    def test_parse_accepts_condition_objects(self):
        assert parse_condition(DayOfMonthRange(1, 5)) == DayOfMonthRange(1, 5)

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "unknown"},
            {"type": "amount_range", "min_cents": -1},
            {"type": "amount_range", "min_cents": 500, "max_cents": 100},
            {"type": "month_range", "start_month": 13},
            {"type": "day_range", "start_day": "1"},
            {"type": "date_range", "start": "yesterday"},
            {"type": "description_regex", "pattern": "(a+)+"},
            {"type": "description_regex"},
            "amount_range",
        ],
    )
    def test_parse_rejects_invalid(self, data):
        with pytest.raises(ValidationError):
            parse_condition(data)

    def test_parse_conditions_empty(self):
        assert parse_conditions(None) == ()
        assert parse_conditions([]) == ()
        with pytest.raises(ValidationError):
            parse_conditions({"type": "amount_range"})


class TestMatcher:
    def test_normalize_text(self):
        assert normalize_text("  Whole   Foods ", case_sensitive=False) == "whole foods"
        assert normalize_text("  Whole   Foods ", case_sensitive=True) == "Whole Foods"

    @pytest.mark.parametrize(
        "match_type,keyword,description,expected",
        [
            ("contains", "starbucks", "POS STARBUCKS STORE 1", True),
            ("contains", "peet's", "POS STARBUCKS STORE 1", False),
            ("exact", "netflix.com", "  NETFLIX.COM ", True),
            ("exact", "netflix", "NETFLIX.COM", False),
            ("startsWith", "pos starbucks", "POS   STARBUCKS STORE", True),
            ("startsWith", "starbucks", "POS STARBUCKS", False),
            ("regex", r"^SHELL\s+OIL\s+\d+", "shell oil 5567", True),
            ("regex", r"^SHELL\d", "SHELL OIL", False),
        ],
    )
    def test_basic_match(self, make_rule, match_type, keyword, description, expected):
        rule = make_rule(keyword=keyword, match_type=match_type)

        assert basic_match(description, rule) is expected

    def test_case_sensitive_rule(self, make_rule):
        rule = make_rule(keyword="Uber", case_sensitive=True)

        assert basic_match("Uber Trip", rule)
        assert not basic_match("UBER TRIP", rule)

    def test_conditions_must_all_hold(self, make_rule):
        rule = make_rule(
            keyword="insurance",
            conditions=(AmountRange(min_cents=10000), DayOfMonthRange(1, 5)),
        )

        assert matches_rule("STATE FARM INSURANCE", -15000, date(2024, 3, 2), rule)
        assert not matches_rule("STATE FARM INSURANCE", -5000, date(2024, 3, 2), rule)
        assert not matches_rule("STATE FARM INSURANCE", -15000, date(2024, 3, 20), rule)

    def test_find_matching_rules_orders_by_priority(self, make_rule, make_transaction):
        rules = [
            make_rule(id=1, keyword="starbucks", priority=5),
            make_rule(id=2, keyword="store", priority=10),
            make_rule(id=3, keyword="starbucks", priority=10),
            make_rule(id=4, keyword="starbucks", priority=99, is_enabled=False),
            make_rule(id=5, keyword="shell", priority=100),
        ]

        matches = find_matching_rules(make_transaction(description="STARBUCKS STORE 123"), rules)

        assert [r.id for r in matches] == [2, 3, 1]
        assert select_best_rule(matches).id == 2

    def test_select_best_rule_without_matches(self):
        assert select_best_rule([]) is None
