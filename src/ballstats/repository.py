"""Document store over SQLite: collection-scoped JSON documents.

Provides DocumentStore with create / read / update-fields / delete by
collection and id, plus an ordered query per collection.  Documents are
plain JSON-compatible dicts; the ``id`` key is never stored in the body,
it is the row key and is injected back on read.

Writes are last-write-wins per document.  Each write commits on its own
via ``with self.conn:``.
"""

import json
import logging
import re
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from ballstats.exceptions import StorageFailure

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL constants
# ---------------------------------------------------------------------------

INSERT_DOCUMENT = """
    INSERT INTO documents (collection, doc_id, data, written_at)
    VALUES (:collection, :doc_id, :data, :written_at)
"""

UPSERT_DOCUMENT = """
    INSERT INTO documents (collection, doc_id, data, written_at)
    VALUES (:collection, :doc_id, :data, :written_at)
    ON CONFLICT(collection, doc_id) DO UPDATE SET
        data       = excluded.data,
        written_at = excluded.written_at
"""

MERGE_FIELDS = """
    UPDATE documents
    SET data = json_patch(data, :fields), written_at = :written_at
    WHERE collection = :collection AND doc_id = :doc_id
"""

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@contextmanager
def _storage_errors(action: str, collection: str, doc_id: str | None = None) -> Iterator[None]:
    """Re-raise sqlite errors as StorageFailure with context."""
    try:
        yield
    except sqlite3.Error as e:
        logger.error("Store %s failed (%s/%s): %s", action, collection, doc_id, e)
        raise StorageFailure(
            f"Failed to {action} {collection}/{doc_id or '*'}: {e}",
            collection=collection,
            doc_id=doc_id,
        ) from e


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _encode(data: dict) -> str:
    body = {k: v for k, v in data.items() if k != "id"}
    return json.dumps(body, default=str)


def _decode(row: sqlite3.Row) -> dict:
    doc = json.loads(row[1])
    doc["id"] = row[0]
    return doc


# ---------------------------------------------------------------------------
# Store class
# ---------------------------------------------------------------------------

class DocumentStore:
    """Generic collection store for ballstats documents.

    Receives a raw ``sqlite3.Connection`` (not a Database instance) so
    tests can pass any connection, including in-memory databases.

    sqlite errors are re-raised as StorageFailure; nothing is retried.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # ------------------------------------------------------------------
    # Write methods
    # ------------------------------------------------------------------

    def add(self, collection: str, data: dict) -> str:
        """Create a document and return its store-assigned id."""
        doc_id = uuid.uuid4().hex
        with _storage_errors("add", collection, doc_id), self.conn:
            self.conn.execute(
                INSERT_DOCUMENT,
                {
                    "collection": collection,
                    "doc_id": doc_id,
                    "data": _encode(data),
                    "written_at": _now(),
                },
            )
        logger.debug("Added %s/%s", collection, doc_id)
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        """Write the whole document under ``doc_id``, replacing any existing one."""
        with _storage_errors("set", collection, doc_id), self.conn:
            self.conn.execute(
                UPSERT_DOCUMENT,
                {
                    "collection": collection,
                    "doc_id": doc_id,
                    "data": _encode(data),
                    "written_at": _now(),
                },
            )

    def update_fields(self, collection: str, doc_id: str, fields: dict) -> bool:
        """Merge ``fields`` into a stored document.

        Uses JSON merge-patch semantics: nested objects are merged, lists
        are replaced, and a ``None`` value removes the key.

        Returns:
            False if the document does not exist.
        """
        with _storage_errors("update", collection, doc_id), self.conn:
            cursor = self.conn.execute(
                MERGE_FIELDS,
                {
                    "collection": collection,
                    "doc_id": doc_id,
                    "fields": _encode(fields),
                    "written_at": _now(),
                },
            )
        return cursor.rowcount > 0

    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document.  Returns False if it did not exist."""
        with _storage_errors("delete", collection, doc_id), self.conn:
            cursor = self.conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Read methods
    # ------------------------------------------------------------------

    def get(self, collection: str, doc_id: str) -> dict | None:
        """Return a document as a dict (with ``id``), or None if not found."""
        with _storage_errors("get", collection, doc_id):
            row = self.conn.execute(
                "SELECT doc_id, data FROM documents "
                "WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
        return _decode(row) if row is not None else None

    def query(
        self,
        collection: str,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        """Return every document in a collection ordered by a top-level field.

        Timestamp values are compared as instants, so ``12:00:00Z`` sorts
        before ``12:00:00.5Z`` whatever the fraction digits.  Other values
        compare as stored.  Documents missing the field sort as NULL (first
        ascending, last descending).  Ties are broken by id for a stable
        order.
        """
        if not _FIELD_RE.match(order_by):
            raise ValueError(f"Invalid order_by field {order_by!r}")
        direction = "DESC" if descending else "ASC"
        with _storage_errors("query", collection):
            rows = self.conn.execute(
                "SELECT doc_id, data FROM documents WHERE collection = :collection "
                f"ORDER BY julianday(json_extract(data, :path)) {direction}, "
                f"json_extract(data, :path) {direction}, doc_id {direction}",
                {"collection": collection, "path": f"$.{order_by}"},
            ).fetchall()
        return [_decode(r) for r in rows]

    def count(self, collection: str) -> int:
        """Return the number of documents in a collection."""
        with _storage_errors("count", collection):
            return self.conn.execute(
                "SELECT COUNT(*) FROM documents WHERE collection = ?",
                (collection,),
            ).fetchone()[0]
