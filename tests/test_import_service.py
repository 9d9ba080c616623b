"""Tests for the import pipeline orchestration."""

import re
import threading
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from ledgerline.config import PipelineSettings
from ledgerline.database.models import Payee as PayeeModel, Rule as RuleModel
from ledgerline.domain.csv_import import ImportService
from ledgerline.domain.errors import (
    DependencyError,
    ImportCancelled,
    NotFoundError,
    StorageError,
    ValidationError,
)


def _row(day, description, amount):
    return {"Date": f"2024-03-{day:02d}", "Description": description, "Amount": amount}


def test_single_row_end_to_end(import_service, sample_account, signed_mapping):
    row = {"Date": "2024-01-15", "Amount": "-12.34", "Description": "POS PURCHASE STARBUCKS #123"}

    (staged,) = import_service.stage_rows([row], signed_mapping)
    preview = import_service.check_duplicates(sample_account.id, [staged], signed_mapping)

    assert staged.is_valid
    assert staged.date == date(2024, 1, 15)
    assert staged.amount == -1234
    assert staged.description == "POS PURCHASE STARBUCKS #123"
    (processed,) = preview.processed
    assert re.fullmatch(r"[0-9a-f]{64}", processed.fingerprint)
    assert processed.status == "new"


def test_preview_file_classifies_rows(import_service, sample_account, signed_mapping, fixtures_dir):
    preview = import_service.preview_file(
        sample_account.id, str(fixtures_dir / "statement_with_errors.csv"), mapping=signed_mapping
    )

    stats = preview.stats
    assert preview.file_name == "statement_with_errors.csv"
    assert stats.total_rows == 4
    assert stats.valid_rows == 1
    assert stats.new_count == 1
    assert stats.error_count == 3
    assert [s.row_index for s in preview.invalid_rows] == [1, 2, 3]


def test_preview_does_not_write(temp_db, import_service, sample_account, signed_mapping, fixtures_dir):
    import_service.preview_file(sample_account.id, str(fixtures_dir / "statement.csv"), mapping=signed_mapping)

    assert temp_db.list_transactions() == []
    assert temp_db.list_import_batches() == []


def test_import_csv_commits_batch(temp_db, import_service, sample_account, signed_mapping, fixtures_dir):
    result = import_service.import_csv(
        sample_account.id, str(fixtures_dir / "statement.csv"), mapping=signed_mapping
    )

    assert result.batch_id is not None
    assert result.imported_count == 4
    assert result.duplicate_count == 0
    assert result.warnings == []
    batch = import_service.get_batch(result.batch_id)
    assert batch.file_name == "statement.csv"
    assert batch.total_rows == 4
    assert batch.csv_mapping_snapshot == signed_mapping.to_dict()
    assert {t.source_batch_id for t in temp_db.list_transactions()} == {result.batch_id}


def test_reimport_same_file_adds_nothing(temp_db, import_service, sample_account, signed_mapping, fixtures_dir):
    path = str(fixtures_dir / "statement.csv")
    import_service.import_csv(sample_account.id, path, mapping=signed_mapping)

    preview = import_service.preview_file(sample_account.id, path, mapping=signed_mapping)
    result = import_service.commit(preview)

    assert preview.stats.duplicate_count == 4
    assert all(p.duplicate_of_id is not None for p in preview.processed)
    assert result.batch_id is None
    assert result.imported_count == 0
    assert result.duplicate_count == 4
    assert len(temp_db.list_transactions()) == 4
    assert len(import_service.list_batches()) == 1


def test_mapping_is_remembered_for_next_import(account_service, import_service, sample_account, signed_mapping, fixtures_dir):
    import_service.import_csv(sample_account.id, str(fixtures_dir / "statement.csv"), mapping=signed_mapping)

    assert account_service.get_mapping(sample_account.id) == signed_mapping
    preview = import_service.preview_file(sample_account.id, str(fixtures_dir / "statement.csv"))
    assert preview.stats.duplicate_count == 4


def test_import_with_profiles(import_service, account_service, fixtures_dir):
    chase = account_service.create_account("Chase", "Chase")
    amex = account_service.create_account("Amex", "American Express")

    chase_result = import_service.import_csv(chase, str(fixtures_dir / "chase_checking.csv"), profile="CHASE_CHECKING")
    amex_result = import_service.import_csv(amex, str(fixtures_dir / "amex.csv"), profile="AMEX")

    assert chase_result.imported_count == 3
    assert amex_result.imported_count == 3
    amounts = sorted(t.amount for t in import_service.db.list_transactions(account_id=amex))
    assert amounts == [-2599, -1340, 50000]


def test_missing_mapping(import_service, sample_account, fixtures_dir):
    with pytest.raises(ValidationError, match="No CSV mapping"):
        import_service.preview_file(sample_account.id, str(fixtures_dir / "statement.csv"))


def test_unknown_account(import_service, signed_mapping):
    with pytest.raises(NotFoundError):
        import_service.check_duplicates(999, [], signed_mapping)


def test_within_file_repeat_imported_once(temp_db, import_rows):
    result = import_rows([_row(1, "COFFEE", "-3.00"), _row(1, "coffee ", "-3.00"), _row(2, "TEA", "-2.00")])

    assert result.imported_count == 2
    assert result.duplicate_count == 1
    assert len(temp_db.list_transactions()) == 2


def test_fuzzy_duplicates_are_held_back_unless_accepted(
    temp_db, import_service, sample_account, signed_mapping, import_rows
):
    import_rows([_row(1, "AMAZON MKTPLACE PMTS", "-25.99")])

    staged = import_service.stage_rows(
        [_row(3, "AMAZON MKTPLACE", "-25.99"), _row(3, "AMAZON MKTPLACE", "-12.00")], signed_mapping
    )
    preview = import_service.check_duplicates(sample_account.id, staged, signed_mapping)

    fuzzy = preview.with_status("fuzzy_duplicate")
    assert len(fuzzy) == 1
    assert fuzzy[0].row_index == 0
    assert preview.stats.fuzzy_duplicate_count == 1

    held = import_service.commit(preview)
    assert held.imported_count == 1
    assert held.duplicate_count == 1

    # Accepting the flagged row imports it
    staged = import_service.stage_rows([_row(3, "AMAZON MKTPLACE", "-25.99")], signed_mapping)
    preview = import_service.check_duplicates(sample_account.id, staged, signed_mapping)
    accepted = import_service.commit(preview, accept_fuzzy=[0])
    assert accepted.imported_count == 1
    assert len(temp_db.list_transactions()) == 3


def test_rules_applied_after_commit(temp_db, rule_service, sample_categories, import_rows):
    coffee = sample_categories["Food & Dining > Coffee"]
    gas = sample_categories["Transportation > Gas"]
    rule_service.create_rule("starbucks", sample_categories["Shopping"], priority=5)
    rule_service.create_rule("starbucks", coffee, priority=10, suggested_payee="Starbucks")
    rule_service.create_rule("shell", gas)

    result = import_rows(
        [_row(1, "STARBUCKS STORE 1234", "-5.50"), _row(2, "SHELL OIL 5567", "-42.10"), _row(3, "PAYROLL", "2500")]
    )

    assert result.rule_result.applied_count == 2
    assert result.rule_result.skipped_count == 1
    by_description = {t.description: t for t in temp_db.list_transactions()}
    assert by_description["STARBUCKS STORE 1234"].primary_category_id == coffee
    assert by_description["STARBUCKS STORE 1234"].payee == "Starbucks"
    assert by_description["STARBUCKS STORE 1234"].is_reviewed
    assert by_description["SHELL OIL 5567"].primary_category_id == gas
    assert by_description["PAYROLL"].primary_category_id is None


def test_rules_can_be_skipped(temp_db, rule_service, sample_categories, import_rows):
    rule_service.create_rule("coffee", sample_categories["Shopping"])

    result = import_rows([_row(1, "COFFEE", "-3.00")], apply_rules=False)

    assert result.rule_result is None
    assert temp_db.list_transactions()[0].primary_category_id is None


def test_rules_setting_controls_default(temp_db, rule_service, sample_account, sample_categories, signed_mapping):
    rule_service.create_rule("coffee", sample_categories["Shopping"])
    service = ImportService(temp_db, settings=PipelineSettings(apply_rules_on_import=False))

    staged = service.stage_rows([_row(1, "COFFEE", "-3.00")], signed_mapping)
    result = service.commit(service.check_duplicates(sample_account.id, staged, signed_mapping))

    assert result.rule_result is None


def test_rule_pass_failure_keeps_batch(temp_db, rule_service, sample_categories, import_rows):
    rule_service.create_rule("coffee", sample_categories["Shopping"])

    with patch.object(temp_db, "list_rules", side_effect=StorageError("boom")):
        result = import_rows([_row(1, "COFFEE", "-3.00")])

    assert result.batch_id is not None
    assert result.rule_result is None
    assert any("Rule application failed" in w for w in result.warnings)
    assert len(temp_db.list_transactions()) == 1


def _locked_query(db, model):
    """Make session queries for one model fail the way a locked SQLite file does."""
    session = db._get_session()
    real_query = session.query

    def query(*entities, **kwargs):
        if entities and entities[0] is model:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return real_query(*entities, **kwargs)

    return patch.object(session, "query", side_effect=query)


def test_locked_rules_table_becomes_warning(temp_db, rule_service, sample_categories, import_rows):
    rule_service.create_rule("coffee", sample_categories["Shopping"])

    with _locked_query(temp_db, RuleModel):
        result = import_rows([_row(1, "COFFEE", "-3.00")])

    assert result.batch_id is not None
    assert result.imported_count == 1
    assert result.rule_result is None
    assert any("Rule application failed" in w and "database is locked" in w for w in result.warnings)
    assert len(temp_db.list_import_batches()) == 1


def test_locked_payees_table_becomes_warning(temp_db, payee_service, import_rows):
    payee_service.create_payee("Netflix")

    with _locked_query(temp_db, PayeeModel):
        result = import_rows([_row(1, "NETFLIX", "-15.49")])

    assert result.batch_id is not None
    assert result.payee_report is None
    assert any("Payee detection failed" in w for w in result.warnings)
    assert temp_db.list_transactions()[0].payee_id is None


def test_payee_pass(temp_db, payee_service, import_rows):
    netflix = payee_service.create_payee("Netflix", aliases=("NETFLIX.COM",))

    result = import_rows([_row(1, "NETFLIX.COM", "-15.49"), _row(2, "POS PURCHASE CORNER BAKERY #123", "-8.00")])

    assert result.payee_report.auto_applied == 1
    assert result.payee_report.suggested == 1
    by_description = {t.description: t for t in temp_db.list_transactions()}
    assert by_description["NETFLIX.COM"].payee == "Netflix"
    assert by_description["NETFLIX.COM"].payee_id == netflix
    assert by_description["POS PURCHASE CORNER BAKERY #123"].payee == "CORNER BAKERY"
    assert by_description["POS PURCHASE CORNER BAKERY #123"].payee_id is None


def test_rule_payee_is_not_overwritten(temp_db, rule_service, payee_service, sample_categories, import_rows):
    payee_service.create_payee("Netflix Inc", aliases=("NETFLIX",))
    rule_service.create_rule("netflix", sample_categories["Bills"], suggested_payee="Streaming")

    result = import_rows([_row(1, "NETFLIX", "-15.49")])

    assert result.payee_report.skipped == 1
    assert temp_db.list_transactions()[0].payee == "Streaming"


def test_cancel_before_prefetch(temp_db, import_service, sample_account, signed_mapping):
    cancel = threading.Event()
    cancel.set()
    staged = import_service.stage_rows([_row(1, "COFFEE", "-3.00")], signed_mapping)

    with pytest.raises(ImportCancelled):
        import_service.check_duplicates(sample_account.id, staged, signed_mapping, cancel_event=cancel)


def test_cancel_before_commit_writes_nothing(temp_db, import_service, sample_account, signed_mapping):
    staged = import_service.stage_rows([_row(1, "COFFEE", "-3.00")], signed_mapping)
    preview = import_service.check_duplicates(sample_account.id, staged, signed_mapping)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(ImportCancelled):
        import_service.commit(preview, cancel_event=cancel)

    assert temp_db.list_transactions() == []
    assert temp_db.list_import_batches() == []


def test_cancel_after_commit_skips_enhancements(
    temp_db, import_service, rule_service, sample_account, sample_categories, signed_mapping
):
    rule_service.create_rule("coffee", sample_categories["Shopping"])
    staged = import_service.stage_rows([_row(1, "COFFEE", "-3.00")], signed_mapping)
    preview = import_service.check_duplicates(sample_account.id, staged, signed_mapping)
    cancel = threading.Event()
    real_commit = temp_db.commit_import_batch

    def commit_then_cancel(batch, payloads):
        result = real_commit(batch, payloads)
        cancel.set()
        return result

    with patch.object(temp_db, "commit_import_batch", side_effect=commit_then_cancel):
        result = import_service.commit(preview, cancel_event=cancel)

    assert result.batch_id is not None
    assert result.imported_count == 1
    assert result.rule_result is None
    assert result.payee_report is None
    assert any("Cancelled" in w for w in result.warnings)
    assert temp_db.list_transactions()[0].primary_category_id is None


def test_commit_storage_error_propagates(temp_db, import_service, sample_account, signed_mapping):
    staged = import_service.stage_rows([_row(1, "COFFEE", "-3.00")], signed_mapping)
    preview = import_service.check_duplicates(sample_account.id, staged, signed_mapping)

    with patch.object(temp_db, "commit_import_batch", side_effect=StorageError("disk full")):
        with pytest.raises(StorageError):
            import_service.commit(preview)

    assert temp_db.list_import_batches() == []


def test_stale_preview_commit_saves_nothing(temp_db, import_service, sample_account, signed_mapping, import_rows):
    staged = import_service.stage_rows([_row(1, "COFFEE", "-3.00"), _row(2, "TEA", "-2.00")], signed_mapping)
    stale = import_service.check_duplicates(sample_account.id, staged, signed_mapping)
    import_rows([_row(2, "TEA", "-2.00")])

    # The second row now collides with a live fingerprint, so the whole batch rolls back
    with pytest.raises(StorageError, match="nothing was saved"):
        import_service.commit(stale)

    assert len(temp_db.list_import_batches()) == 1
    assert [t.description for t in temp_db.list_transactions()] == ["TEA"]


def test_undo_and_reimport(temp_db, import_service, sample_account, signed_mapping, fixtures_dir):
    path = str(fixtures_dir / "statement.csv")
    first = import_service.import_csv(sample_account.id, path, mapping=signed_mapping)

    undo = import_service.undo_batch(first.batch_id)
    assert undo.archived_count == 4
    assert temp_db.list_transactions() == []
    assert import_service.undo_batch(first.batch_id).already_undone

    second = import_service.import_csv(sample_account.id, path, mapping=signed_mapping)
    assert second.imported_count == 4


def test_undo_blocked_by_reconciled(import_service, transaction_service, sample_account, signed_mapping, fixtures_dir):
    result = import_service.import_csv(
        sample_account.id, str(fixtures_dir / "statement.csv"), mapping=signed_mapping
    )
    transaction_service.mark_reconciled(result.transaction_ids[0])

    with pytest.raises(DependencyError):
        import_service.undo_batch(result.batch_id)
    assert not import_service.get_batch(result.batch_id).is_undone


def test_list_batches(import_service, import_rows):
    import_rows([_row(1, "A", "-1")])
    second = import_rows([_row(2, "B", "-1")])

    batches = import_service.list_batches(limit=1)

    assert [b.id for b in batches] == [second.batch_id]
    with pytest.raises(ValidationError):
        import_service.list_batches(limit=0)


def test_fuzzy_candidates_are_prefetched_by_range(temp_db, import_service, sample_account, signed_mapping, import_rows):
    import_rows([_row(1, "OLD", "-1"), _row(20, "NEAR", "-1")])
    staged = import_service.stage_rows([_row(22, "NEAR BY", "-1")], signed_mapping)

    context = import_service.build_context(sample_account.id, staged)

    assert [t.description for t in context.existing_transactions] == ["NEAR"]
    assert len(context.existing_fingerprints) == 2
    assert context.fuzzy_window([date(2024, 3, 22)]) == (date(2024, 3, 19), date(2024, 3, 25))
