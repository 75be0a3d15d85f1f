"""SQLiteStore: local file-based review history.

Schema:
  reviews  one row per completed review of a PO file
"""

from __future__ import annotations

import logging
import sqlite3

from poagent_store.base import BaseStore
from poagent_store.models import ReviewRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS reviews (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    po_file         TEXT NOT NULL,
    agent           TEXT,
    reviewed_at     TEXT,
    score           INTEGER NOT NULL,
    total_entries   INTEGER DEFAULT 0,
    critical        INTEGER DEFAULT 0,
    major           INTEGER DEFAULT 0,
    minor           INTEGER DEFAULT 0,
    runs            INTEGER DEFAULT 1,
    num_turns       INTEGER DEFAULT 0,
    input_tokens    INTEGER DEFAULT 0,
    output_tokens   INTEGER DEFAULT 0,
    review_file     TEXT
);
CREATE INDEX IF NOT EXISTS idx_reviews_po_file ON reviews (po_file);
"""

_COLUMNS = (
    "po_file",
    "agent",
    "reviewed_at",
    "score",
    "total_entries",
    "critical",
    "major",
    "minor",
    "runs",
    "num_turns",
    "input_tokens",
    "output_tokens",
    "review_file",
)


class SQLiteStore(BaseStore):
    """Stores review history in a local SQLite database file.

    The database file path defaults to `.poagent.db` in the current working
    directory. Configure via .poagent.yml: `store_path: /path/to/poagent.db`.
    """

    def __init__(self, db_path: str = ".poagent.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def save(self, record: ReviewRecord) -> None:
        placeholders = ", ".join("?" for _ in _COLUMNS)
        self._conn.execute(
            f"INSERT INTO reviews ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            tuple(getattr(record, column) for column in _COLUMNS),
        )
        self._conn.commit()
        logger.debug("Saved review of %s (score %d)", record.po_file, record.score)

    def list_reviews(self, po_file: str | None = None) -> list[ReviewRecord]:
        if po_file is not None:
            rows = self._conn.execute(
                "SELECT * FROM reviews WHERE po_file=? ORDER BY reviewed_at, id",
                (po_file,),
            ).fetchall()
        else:
            rows = self._conn.execute("SELECT * FROM reviews ORDER BY reviewed_at, id").fetchall()

        return [self._row_to_record(r) for r in rows]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> ReviewRecord:
        return ReviewRecord(
            po_file=row["po_file"],
            agent=row["agent"] or "",
            reviewed_at=row["reviewed_at"] or "",
            score=row["score"],
            total_entries=row["total_entries"],
            critical=row["critical"],
            major=row["major"],
            minor=row["minor"],
            runs=row["runs"],
            num_turns=row["num_turns"],
            input_tokens=row["input_tokens"],
            output_tokens=row["output_tokens"],
            review_file=row["review_file"] or "",
        )
