"""Record API operations: create, get, list, and task status."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from app.exceptions import NotFoundError, ValidationError
from app.models.lesson import LessonStatus, make_title
from app.schemas.lesson import LessonCreated, LessonRead, LessonSummary, TaskRead
from app.services.lesson_generation import LessonGenerator
from app.services.stores.base import LessonStore
from app.services.task_spawner import TaskSpawner, TaskState

logger = logging.getLogger(__name__)


class LessonService:
    def __init__(self, store: LessonStore, spawner: TaskSpawner, generator: LessonGenerator):
        self.store = store
        self.spawner = spawner
        self.generator = generator

    async def create(self, outline: Any) -> LessonCreated:
        """Insert a pending lesson and hand it to background generation.

        Returns as soon as the record exists; the outcome is observed by
        polling ``get``/``list``.
        """
        if not isinstance(outline, str) or not outline.strip():
            raise ValidationError("Lesson outline is required")

        lesson = await self.store.insert_pending(make_title(outline))

        try:
            await self.spawner.spawn(lesson.id, outline)
        except Exception as e:
            logger.error("Could not start generation for lesson %s: %s", lesson.id, e)
            await self.generator.mark_failed(lesson.id)

        return LessonCreated(id=lesson.id)

    async def get(self, lesson_id: str) -> LessonRead:
        if not lesson_id or not lesson_id.strip():
            raise ValidationError("Lesson ID is required")
        return await self.store.get(lesson_id)

    async def list_lessons(self) -> list[LessonSummary]:
        return await self.store.list_summaries()

    async def task_status(self, lesson_id: str) -> TaskRead:
        lesson = await self.get(lesson_id)
        handle = await self.spawner.status(lesson_id)
        # A queued task for a finished lesson was never enqueued (or its result expired).
        if handle is None or (handle.state == TaskState.QUEUED and lesson.status != LessonStatus.PENDING.value):
            raise NotFoundError("No generation task for this lesson")
        return handle.to_read()

    async def recover_stale(self, older_than: timedelta) -> int:
        """Fail pending lessons whose generation cannot still be running."""
        count = await self.store.fail_stale_pending(older_than)
        if count:
            logger.warning("Startup recovery: marked %d pending lesson(s) as failed", count)
        else:
            logger.info("Startup recovery: no stuck lessons found")
        return count
