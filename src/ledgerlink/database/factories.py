"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from ledgerlink.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV = "LEDGERLINK_DB_PATH"
DATABASE_URL_ENV = "LEDGERLINK_DATABASE_URL"


def default_database_path() -> Path:
    """Return ~/.ledgerlink/ledgerlink.db, creating the directory if needed."""
    db_dir = Path.home() / ".ledgerlink"
    db_dir.mkdir(exist_ok=True)
    return db_dir / "ledgerlink.db"


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks LEDGERLINK_DB_PATH
            environment variable, then uses default_database_path()

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    path = database_path or os.environ.get(DB_PATH_ENV) or default_database_path()
    return SQLAlchemyDatabase(f"sqlite:///{Path(path).expanduser()}")


def create_database(database_url: Optional[str] = None, database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a database from a SQLAlchemy URL, falling back to SQLite.

    Insert-ignore needs ``ON CONFLICT`` support, so SQLite and PostgreSQL URLs
    are the useful ones. The PostgreSQL driver is not a dependency of this
    package and must be installed separately.

    Args:
        database_url: SQLAlchemy URL. If None, checks LEDGERLINK_DATABASE_URL
        database_path: SQLite file used when no URL is configured
    """
    url = database_url or os.environ.get(DATABASE_URL_ENV)
    if url:
        return SQLAlchemyDatabase(url)
    return create_sqlite_database(database_path)
