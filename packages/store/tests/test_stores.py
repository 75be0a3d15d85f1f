"""Tests for poagent-store implementations."""

from __future__ import annotations

from poagent_store.models import ReviewRecord
from poagent_store.noop import NoOpStore
from poagent_store.sqlite import SQLiteStore


def _make_record(po_file="po/zh_CN.po", score=90, reviewed_at="2026-01-01T00:00:00+00:00", agent="claude"):
    return ReviewRecord(
        po_file=po_file,
        agent=agent,
        reviewed_at=reviewed_at,
        score=score,
        total_entries=10,
        critical=1,
        major=0,
        minor=0,
        runs=2,
        num_turns=3,
        input_tokens=1200,
        output_tokens=300,
        review_file="po/zh_CN.json",
    )


# ---------------------------------------------------------------------------
# NoOpStore
# ---------------------------------------------------------------------------


class TestNoOpStore:
    def test_save_does_not_raise(self):
        store = NoOpStore()
        store.save(_make_record())  # must not raise

    def test_list_reviews_returns_empty(self):
        store = NoOpStore()
        store.save(_make_record())
        assert store.list_reviews() == []
        assert store.list_reviews("po/zh_CN.po") == []

    def test_close_is_safe(self):
        NoOpStore().close()


# ---------------------------------------------------------------------------
# SQLiteStore
# ---------------------------------------------------------------------------


class TestSQLiteStore:
    def test_save_and_list(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        record = _make_record()
        store.save(record)

        results = store.list_reviews()
        assert results == [record]
        store.close()

    def test_filter_by_po_file(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        store.save(_make_record(po_file="po/zh_CN.po"))
        store.save(_make_record(po_file="po/de.po"))

        results = store.list_reviews("po/de.po")
        assert len(results) == 1
        assert results[0].po_file == "po/de.po"
        store.close()

    def test_ordered_oldest_first(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        store.save(_make_record(score=70, reviewed_at="2026-02-01T00:00:00+00:00"))
        store.save(_make_record(score=50, reviewed_at="2026-01-01T00:00:00+00:00"))

        assert [r.score for r in store.list_reviews()] == [50, 70]
        store.close()

    def test_persists_across_connections(self, tmp_path):
        db = str(tmp_path / "test.db")
        store = SQLiteStore(db_path=db)
        store.save(_make_record())
        store.close()

        reopened = SQLiteStore(db_path=db)
        assert len(reopened.list_reviews()) == 1
        reopened.close()

    def test_empty_database(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        assert store.list_reviews() == []
        store.close()
