"""CSV import domain service.

Drives the ingestion pipeline for one file: stage rows, classify them
against stored history, commit the new ones as an undoable batch, then run
the best-effort rule and payee passes over what was committed.
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import structlog

from ledgerline.config import PipelineSettings
from ledgerline.database.base import Database
from ledgerline.domain.entities import (
    CommitResult,
    CsvMapping,
    ImportBatch,
    NewImportBatch,
    NewTransaction,
    ProcessedTransaction,
    RuleBatchResult,
    StagedTransaction,
    Transaction,
    UndoResult,
)
from ledgerline.domain.errors import (
    ConcurrentEditError,
    DomainError,
    ImportCancelled,
    NotFoundError,
    StorageError,
    ValidationError,
    account_not_found,
)
from ledgerline.domain.csv_mapping import CsvMappingService
from ledgerline.pipeline.context import ImportContext
from ledgerline.pipeline.fingerprint import add_fingerprints
from ledgerline.pipeline.fuzzy_matcher import detect_fuzzy_duplicates
from ledgerline.pipeline.normalizer import normalize_rows, read_csv_rows
from ledgerline.pipeline.payee_resolver import guess_payee
from ledgerline.pipeline.reconciler import detect_exact_duplicates
from ledgerline.rules.applicator import apply_rules_to_batch

logger = structlog.get_logger()


@dataclass(frozen=True)
class ImportStats:
    """Row counts of a staged file."""

    total_rows: int
    valid_rows: int
    new_count: int
    duplicate_count: int
    fuzzy_duplicate_count: int
    error_count: int


@dataclass(frozen=True)
class ImportPreview:
    """A staged and classified file, ready for review and commit."""

    account_id: int
    file_name: str
    mapping: CsvMapping
    staged: list[StagedTransaction]
    processed: list[ProcessedTransaction]

    def with_status(self, status: str) -> list[ProcessedTransaction]:
        return [txn for txn in self.processed if txn.status == status]

    @property
    def invalid_rows(self) -> list[StagedTransaction]:
        return [txn for txn in self.staged if not txn.is_valid]

    @property
    def stats(self) -> ImportStats:
        return ImportStats(
            total_rows=len(self.staged),
            valid_rows=len(self.processed),
            new_count=len(self.with_status("new")),
            duplicate_count=len(self.with_status("duplicate")),
            fuzzy_duplicate_count=len(self.with_status("fuzzy_duplicate")),
            error_count=len(self.invalid_rows),
        )


@dataclass(frozen=True)
class PayeePassReport:
    """Outcome of the post-commit payee pass."""

    auto_applied: int = 0
    suggested: int = 0
    skipped: int = 0
    conflicts: int = 0


@dataclass(frozen=True)
class ImportResult:
    """Outcome of committing an import preview."""

    batch_id: Optional[int]
    imported_count: int
    duplicate_count: int
    error_count: int
    transaction_ids: list[int] = field(default_factory=list)
    rule_result: Optional[RuleBatchResult] = None
    payee_report: Optional[PayeePassReport] = None
    warnings: list[str] = field(default_factory=list)


class ImportService:
    """Service for importing bank statement exports."""

    def __init__(self, db: Database, settings: Optional[PipelineSettings] = None):
        """Initialize import service.

        Args:
            db: Database instance
            settings: Pipeline thresholds; defaults to the built-in values
        """
        self.db = db
        self.settings = settings or PipelineSettings()
        self.mapping_service = CsvMappingService(db)

    def _require_account(self, account_id: int) -> None:
        account = self.db.get_account(account_id)
        if account is None or account.is_archived:
            raise NotFoundError(account_not_found(account_id))

    def stage_rows(self, rows: list[dict[str, str]], mapping: CsvMapping) -> list[StagedTransaction]:
        """Normalize raw rows with the given mapping."""
        return normalize_rows(rows, mapping)

    def stage_file(self, csv_file_path: str, mapping: CsvMapping) -> list[StagedTransaction]:
        """Read and normalize a CSV file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValidationError: If the file or mapping is unusable
        """
        rows = read_csv_rows(csv_file_path, has_header_row=mapping.has_header_row)
        staged = self.stage_rows(rows, mapping)
        logger.info(
            "file_staged",
            file=Path(csv_file_path).name,
            rows=len(staged),
            invalid=sum(1 for txn in staged if not txn.is_valid),
        )
        return staged

    def build_context(
        self,
        account_id: int,
        staged: list[StagedTransaction],
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportContext:
        """Prefetch the lookups needed to classify ``staged``.

        One query loads the account's fingerprints and one ranged query
        loads the fuzzy candidates around the file's dates.
        """
        context = ImportContext(
            account_id=account_id,
            settings=self.settings,
            cancel_event=cancel_event or threading.Event(),
        )
        context.check_cancelled("prefetch")

        context.existing_fingerprints = self.db.get_fingerprint_map(account_id)
        window = context.fuzzy_window([txn.date for txn in staged if txn.is_valid])
        if window is not None:
            context.existing_transactions = self.db.list_transactions_in_range(account_id, *window)
        return context

    def check_duplicates(
        self,
        account_id: int,
        staged: list[StagedTransaction],
        mapping: CsvMapping,
        file_name: str = "import.csv",
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportPreview:
        """Fingerprint valid rows and classify them as new or duplicate.

        All fingerprints are computed before any duplicate check runs.

        Raises:
            NotFoundError: If the account doesn't exist
            ImportCancelled: If cancelled before the prefetch
            StorageError: If the prefetch fails
        """
        self._require_account(account_id)
        fingerprinted = add_fingerprints(staged)
        context = self.build_context(account_id, staged, cancel_event)

        processed = detect_exact_duplicates(fingerprinted, context)
        processed = detect_fuzzy_duplicates(processed, context)

        preview = ImportPreview(
            account_id=account_id,
            file_name=file_name,
            mapping=mapping,
            staged=staged,
            processed=processed,
        )
        stats = preview.stats
        logger.info(
            "duplicates_checked",
            account_id=account_id,
            new=stats.new_count,
            duplicates=stats.duplicate_count,
            fuzzy=stats.fuzzy_duplicate_count,
            errors=stats.error_count,
        )
        return preview

    def preview_file(
        self,
        account_id: int,
        csv_file_path: str,
        mapping: Optional[CsvMapping] = None,
        profile: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportPreview:
        """Resolve the mapping, stage the file and classify its rows."""
        mapping = self.mapping_service.resolve_mapping(account_id, mapping=mapping, profile=profile)
        staged = self.stage_file(csv_file_path, mapping)
        return self.check_duplicates(
            account_id,
            staged,
            mapping,
            file_name=Path(csv_file_path).name,
            cancel_event=cancel_event,
        )

    def commit(
        self,
        preview: ImportPreview,
        apply_rules: Optional[bool] = None,
        accept_fuzzy: Iterable[int] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportResult:
        """Commit the new rows of a preview as one batch.

        Args:
            preview: Output of ``check_duplicates``
            apply_rules: Run the rule pass; defaults to the setting
            accept_fuzzy: Row indexes of fuzzy duplicates the user chose to import
            cancel_event: Checked before the commit and before each later pass

        Returns:
            ImportResult; enhancement failures are reported in ``warnings``

        Raises:
            ImportCancelled: If cancelled before the commit
            StorageError: If the commit fails (nothing is saved)
        """
        cancel_event = cancel_event or threading.Event()
        if cancel_event.is_set():
            raise ImportCancelled("Import cancelled before commit")

        accepted = set(accept_fuzzy)
        to_commit = [
            txn
            for txn in preview.processed
            if txn.status == "new" or (txn.status == "fuzzy_duplicate" and txn.row_index in accepted)
        ]
        stats = preview.stats
        duplicate_count = len(preview.processed) - len(to_commit)

        if not to_commit:
            logger.info("import_nothing_to_commit", account_id=preview.account_id)
            return ImportResult(
                batch_id=None,
                imported_count=0,
                duplicate_count=duplicate_count,
                error_count=stats.error_count,
            )

        batch = NewImportBatch(
            account_id=preview.account_id,
            file_name=preview.file_name,
            total_rows=stats.total_rows,
            imported_count=len(to_commit),
            duplicate_count=duplicate_count,
            error_count=stats.error_count,
            csv_mapping_snapshot=preview.mapping.to_dict(),
        )
        payloads = [
            NewTransaction(
                date=txn.date,
                amount=txn.amount,
                description=txn.description,
                fingerprint=txn.fingerprint,
            )
            for txn in to_commit
        ]
        committed = self.db.commit_import_batch(batch, payloads)

        warnings: list[str] = []
        self._remember_mapping(preview, warnings)

        if apply_rules is None:
            apply_rules = self.settings.apply_rules_on_import

        rule_result = None
        if apply_rules:
            if self._cancelled(cancel_event, "rules", warnings):
                return self._result(committed, batch, warnings)
            rule_result = self._run_rule_pass(committed.batch_id, warnings)

        if self._cancelled(cancel_event, "payees", warnings):
            return self._result(committed, batch, warnings, rule_result)
        payee_report = self._run_payee_pass(committed.batch_id, rule_result, warnings)

        return self._result(committed, batch, warnings, rule_result, payee_report)

    def _result(
        self,
        committed: CommitResult,
        batch: NewImportBatch,
        warnings: list[str],
        rule_result: Optional[RuleBatchResult] = None,
        payee_report: Optional[PayeePassReport] = None,
    ) -> ImportResult:
        return ImportResult(
            batch_id=committed.batch_id,
            imported_count=len(committed.transaction_ids),
            duplicate_count=batch.duplicate_count,
            error_count=batch.error_count,
            transaction_ids=committed.transaction_ids,
            rule_result=rule_result,
            payee_report=payee_report,
            warnings=warnings,
        )

    def _cancelled(self, cancel_event: threading.Event, stage: str, warnings: list[str]) -> bool:
        # The batch is already committed; cancellation only skips enhancements.
        if cancel_event.is_set():
            warnings.append(f"Cancelled before {stage} pass; batch was committed")
            logger.warning("import_enhancements_cancelled", stage=stage)
            return True
        return False

    def _remember_mapping(self, preview: ImportPreview, warnings: list[str]) -> None:
        try:
            self.db.update_account_mapping(preview.account_id, preview.mapping)
        except (DomainError, StorageError) as e:
            warnings.append(f"Could not save CSV mapping: {e}")
            logger.warning("mapping_save_failed", account_id=preview.account_id, error=str(e))

    def _batch_transactions(self, batch_id: int) -> list[Transaction]:
        # Oldest first so the passes walk the file in order
        return list(reversed(self.db.list_transactions(batch_id=batch_id)))

    def _run_rule_pass(self, batch_id: int, warnings: list[str]) -> Optional[RuleBatchResult]:
        try:
            rules = self.db.list_rules(enabled_only=True)
            if not rules:
                return None
            result = apply_rules_to_batch(
                self.db, self._batch_transactions(batch_id), rules, set_reviewed=True
            )
        except (DomainError, StorageError) as e:
            warnings.append(f"Rule application failed: {e}")
            logger.warning("rule_pass_failed", batch_id=batch_id, error=str(e))
            return None

        if result.error_count:
            warnings.append(f"{result.error_count} transaction(s) could not be categorized")
        return result

    def _run_payee_pass(
        self,
        batch_id: int,
        rule_result: Optional[RuleBatchResult],
        warnings: list[str],
    ) -> Optional[PayeePassReport]:
        payee_from_rule = set()
        if rule_result is not None:
            payee_from_rule = {
                r.transaction_id
                for r in rule_result.results
                if r.applied and r.matched_rule is not None and r.matched_rule.suggested_payee
            }

        auto_applied = suggested = skipped = conflicts = 0
        try:
            payees = self.db.list_payees()
            for txn in self._batch_transactions(batch_id):
                if txn.id in payee_from_rule or txn.reconciled:
                    skipped += 1
                    continue

                guess = guess_payee(txn.description, payees)
                try:
                    if guess.payee is not None and guess.confidence >= self.settings.payee_auto_apply_confidence:
                        self.db.update_transaction(
                            txn.id,
                            expected_updated_at=txn.updated_at,
                            payee=guess.payee.name,
                            payee_id=guess.payee.id,
                        )
                        auto_applied += 1
                    elif guess.suggested_name and guess.confidence >= self.settings.payee_suggest_confidence:
                        self.db.update_transaction(
                            txn.id, expected_updated_at=txn.updated_at, payee=guess.suggested_name
                        )
                        suggested += 1
                    else:
                        skipped += 1
                except ConcurrentEditError:
                    conflicts += 1
        except (DomainError, StorageError) as e:
            warnings.append(f"Payee detection failed: {e}")
            logger.warning("payee_pass_failed", batch_id=batch_id, error=str(e))
            return None

        if conflicts:
            warnings.append(f"{conflicts} payee update(s) skipped due to concurrent edits")
        logger.info(
            "payee_pass_completed",
            batch_id=batch_id,
            auto_applied=auto_applied,
            suggested=suggested,
            skipped=skipped,
            conflicts=conflicts,
        )
        return PayeePassReport(
            auto_applied=auto_applied, suggested=suggested, skipped=skipped, conflicts=conflicts
        )

    def import_csv(
        self,
        account_id: int,
        csv_file_path: str,
        mapping: Optional[CsvMapping] = None,
        profile: Optional[str] = None,
        apply_rules: Optional[bool] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportResult:
        """Preview and commit a file in one step, importing only new rows."""
        preview = self.preview_file(
            account_id, csv_file_path, mapping=mapping, profile=profile, cancel_event=cancel_event
        )
        return self.commit(preview, apply_rules=apply_rules, cancel_event=cancel_event)

    def undo_batch(self, batch_id: int) -> UndoResult:
        """Undo an import batch by archiving its transactions.

        Idempotent: undoing an undone batch reports ``already_undone``.

        Raises:
            NotFoundError: If the batch doesn't exist
            DependencyError: If any transaction of the batch is reconciled
        """
        result = self.db.undo_import_batch(batch_id)
        if result.already_undone:
            logger.info("import_undo_noop", batch_id=batch_id)
        return result

    def get_batch(self, batch_id: int) -> Optional[ImportBatch]:
        """Get import batch by ID."""
        return self.db.get_import_batch(batch_id)

    def list_batches(self, account_id: Optional[int] = None, limit: int = 20) -> list[ImportBatch]:
        """List recent import batches, newest first.

        Raises:
            ValidationError: If limit is not positive
        """
        if limit < 1:
            raise ValidationError("Limit must be at least 1")
        return self.db.list_import_batches(account_id=account_id, limit=limit)
