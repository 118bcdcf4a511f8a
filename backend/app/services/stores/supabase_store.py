"""Supabase-backed lesson store.

Uses the service-role key, so row-level security does not apply. The
supabase client is synchronous; every call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from typing import Any, Callable

from supabase import Client, create_client

from app.exceptions import NotFoundError, StoreError
from app.models.lesson import LessonStatus, transition_sources, utcnow
from app.schemas.lesson import LessonRead, LessonSummary
from app.services.stores.base import LessonStore

logger = logging.getLogger(__name__)

# Postgres "invalid input syntax" (e.g. a non-uuid id)
_INVALID_TEXT_REPRESENTATION = "22P02"

_SUMMARY_COLUMNS = "id, title, status, created_at"


class SupabaseLessonStore(LessonStore):
    """Lesson store over a Supabase (PostgREST) table."""

    backend = "supabase"

    def __init__(self, url: str, service_role_key: str, *, table: str = "lessons",
                 client: Client | None = None):
        self.url = url
        self.table_name = table
        self.client: Client = client or create_client(url, service_role_key)

    def _table(self):
        return self.client.table(self.table_name)

    async def _run(self, action: str, query: Callable[[], Any]) -> list[dict[str, Any]]:
        try:
            result = await asyncio.to_thread(query)
        except Exception as e:
            if getattr(e, "code", None) == _INVALID_TEXT_REPRESENTATION:
                raise NotFoundError("Lesson not found") from e
            logger.error("Supabase %s failed: %s", action, e)
            raise StoreError(f"Failed to {action}: {getattr(e, 'message', None) or e}") from e
        return result.data or []

    async def insert_pending(self, title: str) -> LessonRead:
        row = {"title": title, "content": "", "status": LessonStatus.PENDING.value}
        data = await self._run("create lesson", lambda: self._table().insert(row).execute())
        if not data:
            raise StoreError("Failed to create lesson: insert returned no row")
        lesson = LessonRead.model_validate(data[0])
        logger.info("Lesson %s inserted (pending)", lesson.id)
        return lesson

    async def get(self, lesson_id: str) -> LessonRead:
        data = await self._run(
            "fetch lesson",
            lambda: self._table().select("*").eq("id", lesson_id).limit(1).execute(),
        )
        if not data:
            raise NotFoundError("Lesson not found")
        return LessonRead.model_validate(data[0])

    async def list_summaries(self) -> list[LessonSummary]:
        data = await self._run(
            "fetch lessons",
            lambda: self._table().select(_SUMMARY_COLUMNS).order("created_at", desc=True).execute(),
        )
        return [LessonSummary.model_validate(row) for row in data]

    async def complete(self, lesson_id: str, content: str) -> None:
        await self._finish(lesson_id, LessonStatus.DONE, {"content": content})

    async def mark_failed(self, lesson_id: str) -> None:
        await self._finish(lesson_id, LessonStatus.FAILED)

    async def _finish(self, lesson_id: str, target: LessonStatus, extra: dict[str, Any] | None = None) -> None:
        values = {"status": target.value, **(extra or {})}
        data = await self._run(
            "update lesson",
            lambda: (
                self._table()
                .update(values)
                .eq("id", lesson_id)
                .in_("status", transition_sources(target))
                .execute()
            ),
        )
        if not data:
            current = await self.get(lesson_id)
            raise StoreError(f"Lesson {lesson_id} is already {current.status}")
        logger.info("Lesson %s -> %s", lesson_id, values["status"])

    async def fail_stale_pending(self, older_than: timedelta) -> int:
        cutoff = (utcnow() - older_than).isoformat()
        data = await self._run(
            "recover pending lessons",
            lambda: (
                self._table()
                .update({"status": LessonStatus.FAILED.value})
                .eq("status", LessonStatus.PENDING.value)
                .lt("created_at", cutoff)
                .execute()
            ),
        )
        return len(data)

    async def check(self) -> dict[str, Any]:
        t0 = time.time()
        try:
            await self._run("probe lessons table", lambda: self._table().select("id").limit(1).execute())
            return {
                "status": "ok",
                "backend": self.backend,
                "latency_ms": round((time.time() - t0) * 1000, 1),
                "url": self.url,
            }
        except StoreError as e:
            return {"status": "error", "backend": self.backend, "error": str(e), "url": self.url}
