"""Store used when the selected backend lacks its URL or credential."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, NoReturn

from app.exceptions import ConfigError
from app.schemas.lesson import LessonRead, LessonSummary
from app.services.stores.base import LessonStore


class UnconfiguredLessonStore(LessonStore):
    """Every operation raises ConfigError so endpoints degrade to a JSON 500."""

    backend = "unconfigured"

    def __init__(self, reason: str):
        self.reason = reason

    def _fail(self) -> NoReturn:
        raise ConfigError(self.reason)

    async def insert_pending(self, title: str) -> LessonRead:
        self._fail()

    async def get(self, lesson_id: str) -> LessonRead:
        self._fail()

    async def list_summaries(self) -> list[LessonSummary]:
        self._fail()

    async def complete(self, lesson_id: str, content: str) -> None:
        self._fail()

    async def mark_failed(self, lesson_id: str) -> None:
        self._fail()

    async def fail_stale_pending(self, older_than: timedelta) -> int:
        self._fail()

    async def check(self) -> dict[str, Any]:
        return {"status": "unconfigured", "backend": self.backend, "error": self.reason}
