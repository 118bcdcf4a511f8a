"""Abstract record store: the single owner of persisted lesson state."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any

from app.schemas.lesson import LessonRead, LessonSummary


class LessonStore(ABC):
    """Persistence interface used by the API and the generation task.

    ``complete`` and ``mark_failed`` only touch records that are still
    pending; terminal records are never rewritten.
    """

    backend: str = "abstract"

    async def init(self) -> None:
        """Prepare the backend (create tables, open clients)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def insert_pending(self, title: str) -> LessonRead:
        """Insert a new pending record with empty content."""

    @abstractmethod
    async def get(self, lesson_id: str) -> LessonRead:
        """Return the full record or raise NotFoundError."""

    @abstractmethod
    async def list_summaries(self) -> list[LessonSummary]:
        """All records without content, newest first."""

    @abstractmethod
    async def complete(self, lesson_id: str, content: str) -> None:
        """pending -> done with the generated content."""

    @abstractmethod
    async def mark_failed(self, lesson_id: str) -> None:
        """pending -> failed."""

    @abstractmethod
    async def fail_stale_pending(self, older_than: timedelta) -> int:
        """Mark pending records created before now - older_than as failed."""

    @abstractmethod
    async def check(self) -> dict[str, Any]:
        """Connectivity probe for the status endpoint."""
