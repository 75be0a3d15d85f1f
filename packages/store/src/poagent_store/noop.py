"""No-op store, the default when no store is configured."""

from __future__ import annotations

from typing import TYPE_CHECKING

from poagent_store.base import BaseStore

if TYPE_CHECKING:
    from poagent_store.models import ReviewRecord


class NoOpStore(BaseStore):
    """Discards all records. Switch to SQLiteStore with ``store: sqlite``."""

    def save(self, record: ReviewRecord) -> None:
        pass

    def list_reviews(self, po_file: str | None = None) -> list[ReviewRecord]:
        return []
