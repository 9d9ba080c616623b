"""Domain layer for ledgerline application."""

_SERVICES = {
    "AccountService": "ledgerline.domain.account",
    "CategoryService": "ledgerline.domain.category",
    "PayeeService": "ledgerline.domain.payee",
    "RuleService": "ledgerline.domain.rule",
    "TransactionService": "ledgerline.domain.transaction",
    "CsvMappingService": "ledgerline.domain.csv_mapping",
    "ImportService": "ledgerline.domain.csv_import",
}

__all__ = list(_SERVICES)


# Services are imported lazily: the database and pipeline layers import
# ledgerline.domain.entities, and the services import those layers.
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
