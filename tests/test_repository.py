"""Tests for the DocumentStore collection operations.

Exercises add/set/get/update_fields/delete/query/count and the mapping of
sqlite errors to StorageFailure.
"""

import sqlite3

import pytest

from ballstats.db import Database
from ballstats.exceptions import StorageFailure
from ballstats.repository import DocumentStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "test.db")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def store(db):
    return DocumentStore(db.conn)


def make_doc(**overrides):
    data = {
        "team_a": "Tigers",
        "team_b": "Sharks",
        "score": {"team_a": 0, "team_b": 0},
        "status": "created",
        "created_at": "2026-03-01T14:00:00Z",
    }
    data.update(overrides)
    return data


class TestAddAndGet:
    """Tests for document creation and lookup."""

    def test_add_assigns_id(self, store):
        doc_id = store.add("matches", make_doc())
        assert doc_id
        doc = store.get("matches", doc_id)
        assert doc["id"] == doc_id
        assert doc["team_a"] == "Tigers"
        assert doc["score"] == {"team_a": 0, "team_b": 0}

    def test_add_ids_unique(self, store):
        ids = {store.add("matches", make_doc()) for _ in range(5)}
        assert len(ids) == 5

    def test_id_key_not_stored_in_body(self, store, db):
        doc_id = store.add("matches", make_doc(id="ignored"))
        raw = db.conn.execute(
            "SELECT data FROM documents WHERE doc_id = ?", (doc_id,)
        ).fetchone()[0]
        assert '"id"' not in raw
        assert store.get("matches", doc_id)["id"] == doc_id

    def test_get_missing(self, store):
        assert store.get("matches", "nope") is None

    def test_collections_isolated(self, store):
        doc_id = store.add("matches", make_doc())
        assert store.get("teams", doc_id) is None
        assert store.count("teams") == 0


class TestSet:
    """Tests for whole-document writes (last write wins)."""

    def test_set_creates_with_given_id(self, store):
        store.set("teams", "t1", {"name": "Tigers"})
        assert store.get("teams", "t1") == {"id": "t1", "name": "Tigers"}

    def test_set_replaces_whole_document(self, store):
        store.set("teams", "t1", {"name": "Tigers", "coach": "Kim"})
        store.set("teams", "t1", {"name": "Tigers II"})
        assert store.get("teams", "t1") == {"id": "t1", "name": "Tigers II"}
        assert store.count("teams") == 1


class TestUpdateFields:
    """Tests for partial updates."""

    def test_update_single_field(self, store):
        doc_id = store.add("matches", make_doc())
        assert store.update_fields("matches", doc_id, {"status": "inProgress"}) is True
        doc = store.get("matches", doc_id)
        assert doc["status"] == "inProgress"
        assert doc["team_a"] == "Tigers"

    def test_update_missing_returns_false(self, store):
        assert store.update_fields("matches", "nope", {"status": "finished"}) is False

    def test_update_adds_new_field(self, store):
        store.set("player_profiles", "p1", {"name": "Ann"})
        store.update_fields("player_profiles", "p1", {"avatar_url": "file:///a.jpg"})
        assert store.get("player_profiles", "p1")["avatar_url"] == "file:///a.jpg"

    def test_update_replaces_lists(self, store):
        store.set("teams", "t1", {"name": "Tigers", "player_ids": ["a", "b"]})
        store.update_fields("teams", "t1", {"player_ids": ["c"]})
        assert store.get("teams", "t1")["player_ids"] == ["c"]


class TestDelete:
    """Tests for document deletion."""

    def test_delete_existing(self, store):
        doc_id = store.add("matches", make_doc())
        assert store.delete("matches", doc_id) is True
        assert store.get("matches", doc_id) is None

    def test_delete_missing(self, store):
        assert store.delete("matches", "nope") is False


class TestQuery:
    """Tests for ordered collection queries."""

    def test_newest_first_by_default(self, store):
        old = store.add("matches", make_doc(created_at="2026-01-01T00:00:00Z"))
        new = store.add("matches", make_doc(created_at="2026-03-01T00:00:00Z"))
        mid = store.add("matches", make_doc(created_at="2026-02-01T00:00:00Z"))
        assert [d["id"] for d in store.query("matches")] == [new, mid, old]

    def test_ascending(self, store):
        b = store.add("teams", {"name": "b", "created_at": "2026-02-01T00:00:00Z"})
        a = store.add("teams", {"name": "a", "created_at": "2026-01-01T00:00:00Z"})
        assert [d["id"] for d in store.query("teams", descending=False)] == [a, b]

    def test_whole_second_sorts_before_fraction(self, store):
        whole = store.add("matches", make_doc(created_at="2026-03-01T12:00:00Z"))
        half = store.add("matches", make_doc(created_at="2026-03-01T12:00:00.500000Z"))
        later = store.add("matches", make_doc(created_at="2026-03-01T12:00:01Z"))
        assert [d["id"] for d in store.query("matches")] == [later, half, whole]
        assert [d["id"] for d in store.query("matches", descending=False)] == [
            whole, half, later,
        ]

    def test_order_by_other_field(self, store):
        store.set("teams", "t1", {"name": "Sharks"})
        store.set("teams", "t2", {"name": "Bears"})
        names = [d["name"] for d in store.query("teams", order_by="name", descending=False)]
        assert names == ["Bears", "Sharks"]

    def test_empty_collection(self, store):
        assert store.query("matches") == []

    def test_invalid_field_rejected(self, store):
        with pytest.raises(ValueError):
            store.query("matches", order_by="x; DROP TABLE documents")

    def test_count(self, store):
        store.add("matches", make_doc())
        store.add("matches", make_doc())
        assert store.count("matches") == 2


class TestStorageErrors:
    """sqlite failures surface as StorageFailure."""

    def test_closed_connection(self, db, store):
        db.close()
        with pytest.raises(StorageFailure) as exc_info:
            store.get("matches", "m1")
        assert exc_info.value.collection == "matches"
        assert isinstance(exc_info.value.__cause__, sqlite3.Error)

    def test_missing_table(self, tmp_path):
        conn = sqlite3.connect(":memory:")
        store = DocumentStore(conn)
        with pytest.raises(StorageFailure):
            store.add("matches", make_doc())
        conn.close()
