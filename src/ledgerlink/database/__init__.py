"""Database layer for ledgerlink."""

from ledgerlink.database.base import Database
from ledgerlink.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
