"""Tests for the account, category, payee, rule, transaction and mapping services."""

import pytest

from ledgerline.domain.entities import CsvMapping, SplitLine
from ledgerline.domain.errors import (
    ConcurrentEditError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from ledgerline.rules.conditions import AmountRange


class TestAccountService:
    def test_create_and_get(self, account_service):
        account_id = account_service.create_account("  Checking ", "Chase")

        account = account_service.get_account(account_id)
        assert account.name == "Checking"
        assert account.bank_name == "Chase"
        assert account.csv_mapping is None

    def test_duplicate_name(self, account_service, sample_account):
        with pytest.raises(ConflictError):
            account_service.create_account(sample_account.name, "Other")

    def test_empty_name(self, account_service):
        with pytest.raises(ValidationError):
            account_service.create_account("  ", "Bank")

    def test_save_and_get_mapping(self, account_service, sample_account, signed_mapping):
        account_service.save_mapping(sample_account.id, signed_mapping)

        assert account_service.get_mapping(sample_account.id) == signed_mapping

    def test_save_invalid_mapping(self, account_service, sample_account):
        with pytest.raises(ValidationError):
            account_service.save_mapping(
                sample_account.id, CsvMapping(date_column="d", amount_column="", description_column="t")
            )

    def test_archive(self, account_service, sample_account):
        account_service.archive_account(sample_account.id)

        assert account_service.list_accounts() == []
        with pytest.raises(NotFoundError):
            account_service.archive_account(999)


class TestCategoryService:
    def test_paths(self, category_service, sample_categories):
        groceries = sample_categories["Food & Dining > Groceries"]

        assert category_service.format_category_path(groceries) == "Food & Dining > Groceries"
        assert category_service.require_category("Food & Dining > Groceries").id == groceries

    def test_missing_category(self, category_service):
        with pytest.raises(NotFoundError):
            category_service.require_category("Nope")

    def test_invalid_names(self, category_service, sample_categories):
        with pytest.raises(ValidationError):
            category_service.create_category("A > B")
        with pytest.raises(ConflictError):
            category_service.create_category("Groceries", parent_path="Food & Dining")
        with pytest.raises(NotFoundError):
            category_service.create_category("Child", parent_path="Missing")


class TestPayeeService:
    def test_create_and_guess(self, payee_service):
        payee_id = payee_service.create_payee("Starbucks", aliases=("SBUX", " SBUX ", ""))

        assert payee_service.get_payee(payee_id).aliases == ("SBUX",)
        guess = payee_service.guess("POS SBUX 0042")
        assert guess.payee.id == payee_id
        assert guess.confidence == 80

    def test_duplicate_payee(self, payee_service):
        payee_service.create_payee("Starbucks")
        with pytest.raises(ConflictError):
            payee_service.create_payee("Starbucks")

    def test_add_alias(self, payee_service):
        payee_id = payee_service.create_payee("Amazon")

        updated = payee_service.add_alias(payee_id, "AMZN MKTP")

        assert updated.aliases == ("AMZN MKTP",)

    def test_archived_payee_is_not_guessed(self, payee_service):
        payee_id = payee_service.create_payee("Netflix")
        payee_service.archive_payee(payee_id)

        guess = payee_service.guess("NETFLIX")
        assert guess.payee is None
        assert guess.suggested_name == "NETFLIX"


class TestRuleService:
    def test_create_rule_defaults(self, rule_service, sample_categories):
        rule_id = rule_service.create_rule("  StarBucks ", sample_categories["Food & Dining > Coffee"])

        rule = rule_service.get_rule(rule_id)
        assert rule.keyword == "starbucks"
        assert rule.match_type == "contains"
        assert rule.priority == 50
        assert rule.is_enabled
        assert rule.use_count == 0
        assert rule.conditions == ()

    def test_case_sensitive_and_regex_keywords_keep_case(self, rule_service, sample_categories):
        target = sample_categories["Shopping"]
        sensitive = rule_service.create_rule("Uber", target, case_sensitive=True)
        regex = rule_service.create_rule(r"^AMZN\D", target, match_type="regex")

        assert rule_service.get_rule(sensitive).keyword == "Uber"
        assert rule_service.get_rule(regex).keyword == r"^AMZN\D"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"keyword": ""},
            {"keyword": "x" * 201},
            {"keyword": "x", "match_type": "fuzzy"},
            {"keyword": "x", "priority": 0},
            {"keyword": "x", "priority": 101},
            {"keyword": "(a+)+", "match_type": "regex"},
            {"keyword": "x", "conditions": [{"type": "amount_range", "min_cents": 5, "max_cents": 1}]},
        ],
    )
    def test_invalid_rules(self, rule_service, sample_categories, kwargs):
        with pytest.raises(ValidationError):
            rule_service.create_rule(target_category_id=sample_categories["Shopping"], **kwargs)

    def test_missing_category(self, rule_service):
        with pytest.raises(NotFoundError):
            rule_service.create_rule("x", 999)

    def test_conditions_are_stored_typed(self, rule_service, sample_categories):
        rule_id = rule_service.create_rule(
            "insurance",
            sample_categories["Bills"],
            conditions=[{"type": "amount_range", "min_cents": 10000}],
        )

        assert rule_service.get_rule(rule_id).conditions == (AmountRange(min_cents=10000),)

    def test_update_rule_with_stale_copy(self, rule_service, sample_categories):
        rule_id = rule_service.create_rule("coffee", sample_categories["Shopping"])
        stale = rule_service.get_rule(rule_id)
        rule_service.update_rule(rule_id, priority=70)

        with pytest.raises(ConcurrentEditError):
            rule_service.update_rule(rule_id, expected_updated_at=stale.updated_at, priority=20)
        assert rule_service.get_rule(rule_id).priority == 70

    def test_update_keyword_is_normalized(self, rule_service, sample_categories):
        rule_id = rule_service.create_rule("coffee", sample_categories["Shopping"])

        updated = rule_service.update_rule(rule_id, keyword=" PEETS ")

        assert updated.keyword == "peets"

    def test_enable_disable_delete(self, rule_service, sample_categories):
        rule_id = rule_service.create_rule("coffee", sample_categories["Shopping"])

        rule_service.set_enabled(rule_id, False)
        assert rule_service.list_rules(enabled_only=True) == []

        rule_service.delete_rule(rule_id)
        assert rule_service.get_rule(rule_id) is None
        with pytest.raises(NotFoundError):
            rule_service.delete_rule(rule_id)

    def test_apply_rules_to_stored_transactions(
        self, rule_service, transaction_service, sample_categories, import_rows
    ):
        coffee = sample_categories["Food & Dining > Coffee"]
        import_rows(
            [
                {"Date": "2024-03-01", "Description": "STARBUCKS 1", "Amount": "-5"},
                {"Date": "2024-03-02", "Description": "STARBUCKS 2", "Amount": "-6"},
                {"Date": "2024-03-03", "Description": "SHELL OIL", "Amount": "-40"},
            ],
            apply_rules=False,
        )
        rule_service.create_rule("starbucks", coffee)

        result = rule_service.apply_rules()

        assert result.total_transactions == 3
        assert result.applied_count == 2
        assert result.skipped_count == 1
        assert len(transaction_service.list_transactions(category_path="Food & Dining > Coffee")) == 2

        # Categorized rows are reviewed now and not considered again
        assert rule_service.apply_rules().total_transactions == 1


class TestTransactionService:
    def _one(self, temp_db, import_rows, amount="-10.00"):
        result = import_rows(
            [{"Date": "2024-03-01", "Description": "HARDWARE STORE", "Amount": amount}], apply_rules=False
        )
        return temp_db.get_transaction(result.transaction_ids[0])

    def test_set_category(self, temp_db, transaction_service, sample_categories, import_rows):
        txn = self._one(temp_db, import_rows)

        updated = transaction_service.set_category(txn.id, sample_categories["Shopping"])

        assert updated.primary_category_id == sample_categories["Shopping"]
        assert updated.is_reviewed

    def test_split_must_balance(self, temp_db, transaction_service, sample_categories, import_rows):
        txn = self._one(temp_db, import_rows)
        shopping = sample_categories["Shopping"]
        bills = sample_categories["Bills"]

        with pytest.raises(ValidationError, match="total"):
            transaction_service.split_transaction(
                txn.id, [SplitLine(-400, shopping), SplitLine(-500, bills)]
            )
        with pytest.raises(ValidationError):
            transaction_service.split_transaction(txn.id, [SplitLine(-1000, shopping)])

        updated = transaction_service.split_transaction(
            txn.id, [SplitLine(-400, shopping), SplitLine(-600, bills)]
        )
        assert updated.is_split
        assert updated.lines_balance()

    def test_reconciled_is_frozen(self, temp_db, transaction_service, sample_categories, import_rows):
        txn = self._one(temp_db, import_rows)
        transaction_service.mark_reconciled(txn.id)

        with pytest.raises(DependencyError):
            transaction_service.set_category(txn.id, sample_categories["Shopping"])
        with pytest.raises(DependencyError):
            transaction_service.delete_transaction(txn.id)

        transaction_service.mark_reconciled(txn.id, reconciled=False)
        transaction_service.set_category(txn.id, sample_categories["Shopping"])

    def test_stale_edit_is_rejected(self, temp_db, transaction_service, import_rows):
        txn = self._one(temp_db, import_rows)
        transaction_service.set_payee(txn.id, "Ace Hardware")

        with pytest.raises(ConcurrentEditError):
            transaction_service.set_reviewed(txn.id, expected_updated_at=txn.updated_at)

    def test_delete_archives(self, temp_db, transaction_service, import_rows):
        txn = self._one(temp_db, import_rows)

        transaction_service.delete_transaction(txn.id)

        assert transaction_service.list_transactions() == []
        assert transaction_service.list_transactions(include_archived=True)[0].is_archived
        with pytest.raises(NotFoundError):
            transaction_service.set_reviewed(txn.id)

    def test_list_filters(self, temp_db, transaction_service, sample_categories, import_rows):
        txn = self._one(temp_db, import_rows)
        transaction_service.set_category(txn.id, sample_categories["Shopping"])

        assert len(transaction_service.list_transactions(category_path="Shopping")) == 1
        assert transaction_service.list_transactions(category_path="Bills") == []
        assert transaction_service.list_transactions(category_path="Missing") == []
        assert transaction_service.list_transactions(unreviewed_only=True) == []


class TestCsvMappingService:
    def test_profiles(self, mapping_service):
        assert "CHASE_CHECKING" in mapping_service.list_profiles()
        assert mapping_service.get_profile("amex").amount_mode == "separate"
        with pytest.raises(NotFoundError):
            mapping_service.get_profile("NOPE")

    def test_build_mapping(self, mapping_service):
        signed = mapping_service.build_mapping("Date", "Memo", amount_column="Amount")
        separate = mapping_service.build_mapping(
            "Date", "Memo", inflow_column="In", outflow_column="Out", has_header_row=False
        )

        assert signed.amount_mode == "signed"
        assert separate.amount_mode == "separate"
        assert not separate.has_header_row
        with pytest.raises(ValidationError):
            mapping_service.build_mapping("Date", "Memo", amount_column="Amount", inflow_column="In")
        with pytest.raises(ValidationError):
            mapping_service.build_mapping("Date", "Memo")

    def test_resolve_precedence(self, mapping_service, account_service, sample_account, signed_mapping):
        with pytest.raises(ValidationError):
            mapping_service.resolve_mapping(sample_account.id)

        account_service.save_mapping(sample_account.id, signed_mapping)
        assert mapping_service.resolve_mapping(sample_account.id) == signed_mapping

        chase = mapping_service.resolve_mapping(sample_account.id, profile="CHASE_CHECKING")
        assert chase.date_column == "Posting Date"

        explicit = CsvMapping(date_column="D", amount_column="A", description_column="T")
        assert mapping_service.resolve_mapping(sample_account.id, mapping=explicit, profile="AMEX") == explicit

    def test_resolve_unknown_account(self, mapping_service):
        with pytest.raises(NotFoundError):
            mapping_service.resolve_mapping(999)
