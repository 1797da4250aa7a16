"""Tests for database factories."""

from ledgerlink.database.factories import create_database, create_sqlite_database


def test_sqlite_database_from_path(tmp_path):
    db = create_sqlite_database(str(tmp_path / "books.db"))
    assert db.database_url == f"sqlite:///{tmp_path / 'books.db'}"


def test_sqlite_database_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("LEDGERLINK_DB_PATH", str(tmp_path / "env.db"))
    db = create_sqlite_database()
    assert db.database_url.endswith("env.db")


def test_default_path_under_home(tmp_path, monkeypatch):
    monkeypatch.delenv("LEDGERLINK_DB_PATH", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    db = create_sqlite_database()
    assert db.database_url == f"sqlite:///{tmp_path / '.ledgerlink' / 'ledgerlink.db'}"
    assert (tmp_path / ".ledgerlink").is_dir()


def test_url_takes_precedence(tmp_path, monkeypatch):
    monkeypatch.delenv("LEDGERLINK_DATABASE_URL", raising=False)
    url = f"sqlite:///{tmp_path / 'url.db'}"
    assert create_database(database_url=url, database_path=str(tmp_path / "path.db")).database_url == url


def test_url_from_environment(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'env-url.db'}"
    monkeypatch.setenv("LEDGERLINK_DATABASE_URL", url)
    assert create_database(database_path=str(tmp_path / "path.db")).database_url == url


def test_falls_back_to_sqlite_path(tmp_path, monkeypatch):
    monkeypatch.delenv("LEDGERLINK_DATABASE_URL", raising=False)
    db = create_database(database_path=str(tmp_path / "path.db"))
    assert db.database_url.endswith("path.db")
