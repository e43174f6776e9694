"""Document store over DuckDB.

Operational records (jobs, bookings, staff, notifications, audit entries) are
schemaless JSON documents grouped by collection. The store exposes the small
surface the pipeline needs: get, query with field filters, create, update and
delete. Creation and modification timestamps are assigned by the store.
"""

import json
import logging
import re
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import duckdb

logger = logging.getLogger(__name__)

FILTER_OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "in")
SQL_OPERATORS = {"==": "=", "<": "<", "<=": "<=", ">": ">", ">=": ">="}
FIELD_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class StoreError(Exception):
    """Raised when the document store cannot complete an operation."""


class DocumentNotFoundError(StoreError):
    """Raised when a document targeted by a write does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document {doc_id} not found in {collection}")
        self.collection = collection
        self.doc_id = doc_id


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def to_iso(value: datetime) -> str:
    """Format a datetime the way the store persists timestamps.

    Fixed microsecond precision keeps stored timestamps lexicographically
    ordered, so string comparisons in filters match chronological order.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


@dataclass(frozen=True)
class FieldFilter:
    """A single ``field <op> value`` condition on a document."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def matches(self, document: dict[str, Any]) -> bool:
        """Evaluate the condition against a document.

        Documents missing the field never match, except for ``!=``.
        """
        if self.field not in document:
            return self.op == "!="

        actual = document[self.field]
        if self.op == "==":
            return actual == self.value
        if self.op == "!=":
            return actual != self.value
        if self.op == "in":
            return actual in self.value

        try:
            if self.op == "<":
                return actual < self.value
            if self.op == "<=":
                return actual <= self.value
            if self.op == ">":
                return actual > self.value
            return actual >= self.value
        except TypeError:
            # Mismatched types (e.g. None vs str) never satisfy an ordering
            return False


class DocumentStore(ABC):
    """Abstract interface to the operational document store."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch a document by id.

        Returns:
            The document (including its ``id``) or None if absent.
        """

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: list[FieldFilter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return documents in a collection matching every filter."""

    @abstractmethod
    def create(self, collection: str, data: dict[str, Any], doc_id: str | None = None) -> str:
        """Create a document and return its id."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        """Merge ``changes`` into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """


class DuckDBDocumentStore(DocumentStore):
    """Document store persisting JSON documents in the ``documents`` table."""

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the store.

        Args:
            conn: DuckDB connection with migrations applied.
            clock: Source of server timestamps (injectable for tests).
        """
        self.conn = conn
        self.clock = clock
        self._lock = threading.Lock()

    def _decode(self, doc_id: str, raw: str) -> dict[str, Any]:
        document = json.loads(raw)
        document["id"] = doc_id
        return document

    def _sql_condition(self, field_filter: FieldFilter) -> tuple[str, str] | None:
        """Translate a string comparison into a SQL prefilter on the JSON data.

        Only string values are pushed down. A JSON string extracts to the same
        text; other JSON values extract to their literal text and are rejected
        later by FieldFilter.matches. The prefilter never drops a document the
        filter would accept.
        """
        if (
            field_filter.op not in SQL_OPERATORS
            or not isinstance(field_filter.value, str)
            or not FIELD_NAME_PATTERN.match(field_filter.field)
        ):
            return None
        sql_op = SQL_OPERATORS[field_filter.op]
        return f"json_extract_string(data, '$.{field_filter.field}') {sql_op} ?", field_filter.value

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:
            with self._lock:
                row = self.conn.execute(
                    "SELECT id, data FROM documents WHERE collection = ? AND id = ?",
                    [collection, doc_id],
                ).fetchone()
        except duckdb.Error as e:
            raise StoreError(f"Failed to read {collection}/{doc_id}: {e}") from e

        if row is None:
            return None
        return self._decode(row[0], row[1])

    def query(
        self,
        collection: str,
        filters: list[FieldFilter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        conditions = ["collection = ?"]
        params: list[Any] = [collection]
        for field_filter in filters or []:
            condition = self._sql_condition(field_filter)
            if condition is not None:
                conditions.append(condition[0])
                params.append(condition[1])

        try:
            with self._lock:
                rows = self.conn.execute(
                    f"SELECT id, data FROM documents WHERE {' AND '.join(conditions)} "
                    "ORDER BY created_at, id",
                    params,
                ).fetchall()
        except duckdb.Error as e:
            raise StoreError(f"Failed to query {collection}: {e}") from e

        # SQL narrows by string comparisons; every filter is still applied here
        documents = [self._decode(row[0], row[1]) for row in rows]
        if filters:
            documents = [doc for doc in documents if all(f.matches(doc) for f in filters)]

        if order_by is not None:
            present = [doc for doc in documents if doc.get(order_by) is not None]
            missing = [doc for doc in documents if doc.get(order_by) is None]
            present.sort(key=lambda doc: doc[order_by], reverse=descending)
            documents = present + missing

        if limit is not None:
            documents = documents[:limit]
        return documents

    def create(self, collection: str, data: dict[str, Any], doc_id: str | None = None) -> str:
        doc_id = doc_id or str(uuid.uuid4())
        now = to_iso(self.clock())

        document = {k: v for k, v in data.items() if k != "id"}
        document["createdAt"] = now
        document["updatedAt"] = now

        try:
            with self._lock:
                existing = self.conn.execute(
                    "SELECT 1 FROM documents WHERE collection = ? AND id = ?",
                    [collection, doc_id],
                ).fetchone()
                if existing is not None:
                    raise StoreError(f"Document {doc_id} already exists in {collection}")

                self.conn.execute(
                    """
                    INSERT INTO documents (collection, id, data, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    [collection, doc_id, json.dumps(document, default=str), now, now],
                )
        except duckdb.Error as e:
            raise StoreError(f"Failed to create document in {collection}: {e}") from e

        logger.debug("Created document %s/%s", collection, doc_id)
        return doc_id

    def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        now = to_iso(self.clock())

        try:
            with self._lock:
                row = self.conn.execute(
                    "SELECT data FROM documents WHERE collection = ? AND id = ?",
                    [collection, doc_id],
                ).fetchone()
                if row is None:
                    raise DocumentNotFoundError(collection, doc_id)

                document = json.loads(row[0])
                document.update({k: v for k, v in changes.items() if k != "id"})
                document["updatedAt"] = now

                self.conn.execute(
                    """
                    UPDATE documents SET data = ?, updated_at = ?
                    WHERE collection = ? AND id = ?
                    """,
                    [json.dumps(document, default=str), now, collection, doc_id],
                )
        except duckdb.Error as e:
            raise StoreError(f"Failed to update {collection}/{doc_id}: {e}") from e

        logger.debug("Updated document %s/%s fields=%s", collection, doc_id, sorted(changes))

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            with self._lock:
                row = self.conn.execute(
                    "SELECT 1 FROM documents WHERE collection = ? AND id = ?",
                    [collection, doc_id],
                ).fetchone()
                if row is None:
                    raise DocumentNotFoundError(collection, doc_id)

                self.conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND id = ?",
                    [collection, doc_id],
                )
        except duckdb.Error as e:
            raise StoreError(f"Failed to delete {collection}/{doc_id}: {e}") from e

        logger.debug("Deleted document %s/%s", collection, doc_id)
