"""Database layer for ledgerline application."""

from ledgerline.database.base import Database
from ledgerline.database.deletion import DeletionPolicy
from ledgerline.database.factories import create_sqlite_database

__all__ = ["Database", "DeletionPolicy", "create_sqlite_database"]
