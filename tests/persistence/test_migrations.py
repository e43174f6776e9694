"""Tests for database migrations."""

import pytest

from hostops.db import get_connection, init_db, run_migrations


def test_shipped_migrations_create_documents_table():
    """Test that the packaged migrations create the documents table."""
    conn = get_connection(":memory:")

    applied = run_migrations(conn)

    assert applied == ["001_documents"]
    result = conn.execute("SELECT COUNT(*) FROM documents").fetchone()
    assert result == (0,)
    conn.close()


def test_migrations_are_idempotent():
    """Test that a second run applies nothing."""
    conn = init_db(":memory:")

    assert run_migrations(conn) == []
    versions = conn.execute("SELECT version FROM schema_migrations").fetchall()
    assert versions == [("001_documents",)]
    conn.close()


def test_migrations_apply_in_order(tmp_path):
    """Test that migrations run in filename order and are recorded."""
    (tmp_path / "002_second.sql").write_text("INSERT INTO things VALUES (2);")
    (tmp_path / "001_first.sql").write_text("CREATE TABLE things (n INTEGER);")
    conn = get_connection(":memory:")

    applied = run_migrations(conn, migrations_dir=tmp_path)

    assert applied == ["001_first", "002_second"]
    assert conn.execute("SELECT n FROM things").fetchall() == [(2,)]

    (tmp_path / "003_third.sql").write_text("INSERT INTO things VALUES (3);")
    assert run_migrations(conn, migrations_dir=tmp_path) == ["003_third"]
    conn.close()


def test_empty_migrations_dir(tmp_path):
    conn = get_connection(":memory:")

    assert run_migrations(conn, migrations_dir=tmp_path) == []
    conn.close()


def test_missing_migrations_dir(tmp_path):
    conn = get_connection(":memory:")

    with pytest.raises(FileNotFoundError):
        run_migrations(conn, migrations_dir=tmp_path / "missing")
    conn.close()


def test_file_database_persists(tmp_path):
    """Test that a file-backed database keeps its schema across connections."""
    db_path = str(tmp_path / "nested" / "hostops.db")

    init_db(db_path).close()
    conn = init_db(db_path)

    assert run_migrations(conn) == []
    conn.close()
