"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic: JSON columns (mappings, split
lines, aliases, rule conditions) are decoded here so the rest of the code
only sees typed entities.
"""

from ledgerline.domain import entities as domain
from ledgerline.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    ImportBatch as ORMImportBatch,
    Payee as ORMPayee,
    Rule as ORMRule,
    Transaction as ORMTransaction,
)
from ledgerline.rules.conditions import parse_conditions


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    mapping = orm_account.csv_mapping
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        created_at=orm_account.created_at,
        updated_at=orm_account.updated_at,
        csv_mapping=domain.CsvMapping.from_dict(mapping) if mapping else None,
        is_archived=orm_account.is_archived,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        created_at=orm_category.created_at,
        is_archived=orm_category.is_archived,
    )


def payee_to_domain(orm_payee: ORMPayee) -> domain.Payee:
    """Convert SQLAlchemy Payee model to domain Payee entity."""
    return domain.Payee(
        id=orm_payee.id,
        name=orm_payee.name,
        aliases=tuple(orm_payee.aliases or ()),
        default_category_id=orm_payee.default_category_id,
        is_archived=orm_payee.is_archived,
        updated_at=orm_payee.updated_at,
    )


def rule_to_domain(orm_rule: ORMRule) -> domain.Rule:
    """Convert SQLAlchemy Rule model to domain Rule entity."""
    return domain.Rule(
        id=orm_rule.id,
        keyword=orm_rule.keyword,
        match_type=orm_rule.match_type,
        target_category_id=orm_rule.target_category_id,
        priority=orm_rule.priority,
        created_at=orm_rule.created_at,
        updated_at=orm_rule.updated_at,
        case_sensitive=orm_rule.case_sensitive,
        suggested_payee=orm_rule.suggested_payee,
        conditions=parse_conditions(orm_rule.conditions),
        is_enabled=orm_rule.is_enabled,
        use_count=orm_rule.use_count,
        last_used_at=orm_rule.last_used_at,
    )


def lines_to_domain(data: list[dict]) -> tuple[domain.SplitLine, ...]:
    """Decode the JSON split lines column."""
    return tuple(domain.SplitLine.from_dict(item) for item in data or ())


def lines_to_data(lines: tuple[domain.SplitLine, ...]) -> list[dict]:
    """Encode split lines for the JSON column."""
    return [line.to_dict() for line in lines]


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        account_id=orm_transaction.account_id,
        date=orm_transaction.date,
        amount=orm_transaction.amount,
        description=orm_transaction.description,
        fingerprint=orm_transaction.fingerprint,
        lines=lines_to_domain(orm_transaction.lines),
        imported_at=orm_transaction.imported_at,
        updated_at=orm_transaction.updated_at,
        payee=orm_transaction.payee,
        payee_id=orm_transaction.payee_id,
        source_batch_id=orm_transaction.source_batch_id,
        is_split=orm_transaction.is_split,
        is_reviewed=orm_transaction.is_reviewed,
        reconciled=orm_transaction.reconciled,
        is_archived=orm_transaction.is_archived,
    )


def import_batch_to_domain(orm_batch: ORMImportBatch) -> domain.ImportBatch:
    """Convert SQLAlchemy ImportBatch model to domain ImportBatch entity."""
    return domain.ImportBatch(
        id=orm_batch.id,
        account_id=orm_batch.account_id,
        file_name=orm_batch.file_name,
        imported_at=orm_batch.imported_at,
        total_rows=orm_batch.total_rows,
        imported_count=orm_batch.imported_count,
        duplicate_count=orm_batch.duplicate_count,
        error_count=orm_batch.error_count,
        csv_mapping_snapshot=orm_batch.csv_mapping_snapshot,
        is_undone=orm_batch.is_undone,
        undone_at=orm_batch.undone_at,
    )
