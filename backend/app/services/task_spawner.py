"""Spawning of background generation tasks.

Two implementations share one interface:

* ``AsyncioTaskSpawner`` runs each generation as a detached ``asyncio.Task``
  in the web process and keeps an observable handle per lesson.
* ``CeleryTaskSpawner`` enqueues ``app.tasks.lesson_tasks.generate_lesson``
  on the Redis broker and reads state back from the result backend.

There is no pool limit and no admission control: every create spawns.
"""

from __future__ import annotations

import asyncio
import enum
import functools
import logging
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime

from app.config import Settings
from app.models.lesson import utcnow
from app.schemas.lesson import TaskRead
from app.services.lesson_generation import LessonGenerator

logger = logging.getLogger(__name__)


class TaskState(str, enum.Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TaskHandle:
    """Observable record of one spawned generation task."""

    task_id: str
    lesson_id: str
    backend: str
    state: TaskState = TaskState.QUEUED
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def finished(self) -> bool:
        return self.state in (TaskState.SUCCEEDED, TaskState.FAILED, TaskState.CANCELLED)

    def to_read(self) -> TaskRead:
        return TaskRead(
            task_id=self.task_id,
            lesson_id=self.lesson_id,
            backend=self.backend,
            state=self.state.value,
            error=self.error,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )


class TaskSpawner(ABC):
    """Interface for handing a lesson to background generation."""

    backend: str = "abstract"

    @abstractmethod
    async def spawn(self, lesson_id: str, outline: str) -> TaskHandle:
        """Start generation without waiting for it."""

    @abstractmethod
    async def status(self, lesson_id: str) -> TaskHandle | None:
        """Return the handle for the lesson's task, if one is known."""

    async def shutdown(self) -> None:
        """Stop accepting work and release resources."""


# ---------------------------------------------------------------------------
# In-process asyncio tasks
# ---------------------------------------------------------------------------

class AsyncioTaskSpawner(TaskSpawner):
    """Detached asyncio tasks with a bounded registry of handles.

    In-flight handles are always kept. Once more than ``max_handles`` are
    tracked, the oldest finished ones are dropped.
    """

    backend = "asyncio"

    def __init__(self, generator: LessonGenerator, *, max_handles: int = 1000):
        self.generator = generator
        self.max_handles = max_handles
        self._handles: OrderedDict[str, TaskHandle] = OrderedDict()
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def tracked(self) -> int:
        return len(self._handles)

    async def spawn(self, lesson_id: str, outline: str) -> TaskHandle:
        handle = TaskHandle(task_id=uuid.uuid4().hex, lesson_id=lesson_id, backend=self.backend)
        task = asyncio.create_task(self._run(handle, outline), name=f"generate-lesson-{lesson_id}")
        self._handles[lesson_id] = handle
        self._handles.move_to_end(lesson_id)
        self._tasks[lesson_id] = task
        task.add_done_callback(functools.partial(self._on_done, handle))
        self._prune()
        logger.info("Spawned generation task %s for lesson %s", handle.task_id, lesson_id)
        return handle

    def _prune(self) -> None:
        excess = len(self._handles) - self.max_handles
        if excess <= 0:
            return
        stale = [lid for lid, h in self._handles.items() if h.finished and lid not in self._tasks][:excess]
        for lesson_id in stale:
            del self._handles[lesson_id]

    async def _run(self, handle: TaskHandle, outline: str) -> None:
        handle.state = TaskState.RUNNING
        handle.started_at = utcnow()
        try:
            await self.generator.run(handle.lesson_id, outline)
        except asyncio.CancelledError:
            handle.state = TaskState.CANCELLED
            handle.error = "cancelled"
            raise
        except Exception as e:
            # Already reconciled into the record; keep it on the handle.
            handle.state = TaskState.FAILED
            handle.error = str(e) or type(e).__name__
        else:
            handle.state = TaskState.SUCCEEDED
        finally:
            handle.finished_at = utcnow()

    def _on_done(self, handle: TaskHandle, task: asyncio.Task) -> None:
        self._tasks.pop(handle.lesson_id, None)
        if task.cancelled() and handle.state == TaskState.QUEUED:
            handle.state = TaskState.CANCELLED
            handle.error = "cancelled before start"
            handle.finished_at = utcnow()
        self._prune()
        if handle.state == TaskState.FAILED:
            logger.warning("Generation task for lesson %s failed: %s", handle.lesson_id, handle.error)
        else:
            logger.info("Generation task for lesson %s finished: %s", handle.lesson_id, handle.state.value)

    async def status(self, lesson_id: str) -> TaskHandle | None:
        return self._handles.get(lesson_id)

    async def wait(self, lesson_id: str, timeout: float | None = None) -> TaskHandle | None:
        """Wait for the lesson's task to finish (or the timeout to pass)."""
        handle = self._handles.get(lesson_id)
        task = self._tasks.get(lesson_id)
        if task is not None:
            await asyncio.wait({task}, timeout=timeout)
        return handle

    async def shutdown(self) -> None:
        """Cancel in-flight tasks; their records are marked failed."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        handles = [self._handles[lesson_id] for lesson_id in self._tasks]
        logger.warning("Cancelling %d in-flight generation task(s)", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        # Tasks cancelled before their first step never reached the generator.
        for handle in handles:
            if handle.error == "cancelled before start":
                await self.generator.mark_failed(handle.lesson_id)


# ---------------------------------------------------------------------------
# Celery worker tasks
# ---------------------------------------------------------------------------

_CELERY_STATES: dict[str, TaskState] = {
    "PENDING": TaskState.QUEUED,
    "RECEIVED": TaskState.QUEUED,
    "STARTED": TaskState.RUNNING,
    "RETRY": TaskState.RUNNING,
    "SUCCESS": TaskState.SUCCEEDED,
    "FAILURE": TaskState.FAILED,
    "REVOKED": TaskState.CANCELLED,
}


class CeleryTaskSpawner(TaskSpawner):
    """Enqueue generation on Celery. The Celery task id is the lesson id.

    Keeps no per-process state: any web process can report on a task
    another one enqueued. Celery reports PENDING for ids it has never
    seen, so callers confirm the lesson exists first.
    """

    backend = "celery"

    async def spawn(self, lesson_id: str, outline: str) -> TaskHandle:
        from app.tasks.lesson_tasks import generate_lesson

        result = await asyncio.to_thread(
            generate_lesson.apply_async, args=(lesson_id, outline), task_id=lesson_id,
        )
        logger.info("Enqueued celery task %s for lesson %s", result.id, lesson_id)
        return TaskHandle(task_id=result.id, lesson_id=lesson_id, backend=self.backend)

    async def status(self, lesson_id: str) -> TaskHandle | None:
        from app.tasks import celery_app

        result = celery_app.AsyncResult(lesson_id)
        state = await asyncio.to_thread(lambda: result.state)

        handle = TaskHandle(task_id=lesson_id, lesson_id=lesson_id, backend=self.backend)
        handle.state = _CELERY_STATES.get(state, TaskState.QUEUED)
        if handle.state == TaskState.FAILED:
            handle.error = str(await asyncio.to_thread(lambda: result.result))
        if handle.finished:
            handle.finished_at = await asyncio.to_thread(lambda: result.date_done)
        return handle


def build_task_spawner(settings: Settings, generator: LessonGenerator) -> TaskSpawner:
    """Factory to get the configured task spawner."""
    if settings.TASK_BACKEND.lower() == "celery":
        return CeleryTaskSpawner()
    return AsyncioTaskSpawner(generator, max_handles=settings.TASK_HANDLE_LIMIT)
