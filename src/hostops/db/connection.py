"""DuckDB connections for the operational document store."""

import logging
import os
from pathlib import Path

import duckdb

from hostops.db.migrations import run_migrations

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "data/hostops.db"
MEMORY = ":memory:"


def get_db_path() -> str:
    """HOSTOPS_DB_PATH, or data/hostops.db relative to the working directory."""
    return os.getenv("HOSTOPS_DB_PATH", DEFAULT_DB_PATH)


def get_connection(db_path: str | None = None, read_only: bool = False) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection.

    Args:
        db_path: File path or ":memory:" (default: get_db_path())
        read_only: Open the file read-only

    Returns:
        An open connection. Parent directories of file databases are created.
    """
    db_path = db_path or get_db_path()
    if db_path != MEMORY:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    logger.debug("Opening DuckDB database at %s", db_path)
    return duckdb.connect(db_path, read_only=read_only)


def init_db(db_path: str | None = None) -> duckdb.DuckDBPyConnection:
    """Open the database and bring its schema up to date."""
    conn = get_connection(db_path=db_path)

    applied = run_migrations(conn)
    if applied:
        logger.info("Database %s migrated: %s", db_path or get_db_path(), ", ".join(applied))
    return conn
