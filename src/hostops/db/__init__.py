"""Persistence layer for hostops (DuckDB-backed document store)."""

from hostops.db.connection import get_connection, get_db_path, init_db
from hostops.db.documents import (
    DocumentNotFoundError,
    DocumentStore,
    DuckDBDocumentStore,
    FieldFilter,
    StoreError,
    to_iso,
    utc_now,
)
from hostops.db.migrations import run_migrations

__all__ = [
    "DocumentNotFoundError",
    "DocumentStore",
    "DuckDBDocumentStore",
    "FieldFilter",
    "StoreError",
    "get_connection",
    "get_db_path",
    "init_db",
    "run_migrations",
    "to_iso",
    "utc_now",
]
