"""Abstract store interface.

The CLI depends on BaseStore, not on a concrete backend, so backends are
swappable without touching CLI code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from poagent_store.models import ReviewRecord


class BaseStore(ABC):
    """Pluggable persistence layer for review history."""

    @abstractmethod
    def save(self, record: ReviewRecord) -> None:
        """Persist a completed review record."""

    @abstractmethod
    def list_reviews(self, po_file: str | None = None) -> list[ReviewRecord]:
        """Return reviews oldest first, optionally only those of one PO file.

        Returns an empty list if no reviews exist.
        """

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """
