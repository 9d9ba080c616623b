"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class ConcurrentEditError(ConflictError):
    """A compare-and-swap update found a newer ``updated_at``.

    Callers must refetch the record before retrying.
    """

    code = "CONCURRENT_EDIT"
    retryable = True


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class ImportCancelled(DomainError):
    """The import was cancelled before anything was written."""


class StorageError(RuntimeError):
    """Unexpected failure of the persistence layer."""


CONCURRENT_EDIT_REASON = "Concurrent edit"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing rule."""
    return f"Rule {rule_id} not found"


def payee_not_found(payee_id: int) -> str:
    """Return message for missing payee."""
    return f"Payee {payee_id} not found"


def batch_not_found(batch_id: int) -> str:
    """Return message for missing import batch."""
    return f"Import batch {batch_id} not found"


def transaction_reconciled(transaction_id: int) -> str:
    """Return message when an edit targets a reconciled transaction."""
    return f"Transaction {transaction_id} is reconciled and cannot be modified"


def concurrent_edit(entity: str, entity_id: int) -> str:
    """Return message for a stale ``updated_at`` precondition."""
    return f"This {entity} ({entity_id}) was modified by someone else. Please reload and try again."


def batch_undo_blocked(batch_id: int, reconciled_count: int) -> str:
    """Return message when an undo would touch reconciled transactions."""
    return (
        f"Cannot undo import batch {batch_id}: it contains {reconciled_count} reconciled "
        f"transaction{'s' if reconciled_count != 1 else ''}."
    )
