"""Tests for background task spawning and task handles."""

import asyncio
from types import SimpleNamespace

import pytest

from app.exceptions import GenerationError, NotFoundError
from app.services.lesson_generation import LessonGenerator
from app.services.lessons import LessonService
from app.services.task_spawner import (
    AsyncioTaskSpawner,
    CeleryTaskSpawner,
    TaskState,
    build_task_spawner,
)
from conftest import InMemoryLessonStore, make_settings


class ScriptedWriter:
    is_configured = True

    def __init__(self):
        self.gate = asyncio.Event()
        self.error = None

    async def write(self, outline):
        await self.gate.wait()
        if self.error:
            raise self.error
        return f"lesson for {outline}"


@pytest.fixture
def store():
    return InMemoryLessonStore()


@pytest.fixture
def writer():
    return ScriptedWriter()


@pytest.fixture
def spawner(store, writer):
    return AsyncioTaskSpawner(LessonGenerator(writer, store))


@pytest.mark.anyio
async def test_spawn_returns_before_generation(spawner, store, writer):
    lesson = await store.insert_pending("t")
    handle = await spawner.spawn(lesson.id, "t")

    assert handle.state == TaskState.QUEUED
    await asyncio.sleep(0)
    assert handle.state == TaskState.RUNNING
    assert spawner.in_flight == 1

    writer.gate.set()
    await spawner.wait(lesson.id, timeout=5)
    assert handle.state == TaskState.SUCCEEDED
    assert handle.finished_at >= handle.started_at
    assert spawner.in_flight == 0
    assert (await store.get(lesson.id)).content == "lesson for t"


@pytest.mark.anyio
async def test_failure_is_kept_on_handle(spawner, store, writer):
    lesson = await store.insert_pending("t")
    writer.error = GenerationError("LLM HTTP error: 429")
    writer.gate.set()

    await spawner.spawn(lesson.id, "t")
    handle = await spawner.wait(lesson.id, timeout=5)

    assert handle.state == TaskState.FAILED
    assert handle.error == "LLM HTTP error: 429"
    assert handle.to_read().state == "failed"
    assert (await store.get(lesson.id)).status == "failed"


@pytest.mark.anyio
async def test_status_of_unknown_lesson_is_none(spawner):
    assert await spawner.status("nope") is None


@pytest.mark.anyio
async def test_shutdown_cancels_running_tasks_and_fails_records(spawner, store):
    running = await store.insert_pending("running")
    await spawner.spawn(running.id, "running")
    await asyncio.sleep(0)

    queued = await store.insert_pending("queued")
    await spawner.spawn(queued.id, "queued")

    await spawner.shutdown()

    assert (await spawner.status(running.id)).state == TaskState.CANCELLED
    assert (await spawner.status(queued.id)).state == TaskState.CANCELLED
    assert (await store.get(running.id)).status == "failed"
    assert (await store.get(queued.id)).status == "failed"


@pytest.mark.anyio
async def test_celery_spawner_enqueues_with_lesson_id(monkeypatch):
    from app.tasks import lesson_tasks

    calls = []

    def fake_apply_async(args, task_id):
        calls.append((args, task_id))
        return SimpleNamespace(id=task_id)

    monkeypatch.setattr(lesson_tasks.generate_lesson, "apply_async", fake_apply_async)

    handle = await CeleryTaskSpawner().spawn("lesson-1", "outline")

    assert calls == [(("lesson-1", "outline"), "lesson-1")]
    assert handle.task_id == "lesson-1"
    assert handle.backend == "celery"


@pytest.mark.anyio
async def test_celery_status_maps_result_state(monkeypatch):
    from app.tasks import celery_app

    results = {
        "failed-1": SimpleNamespace(state="FAILURE", result=GenerationError("LLM HTTP error: 500"), date_done=None),
        "never-seen": SimpleNamespace(state="PENDING", result=None, date_done=None),
    }
    monkeypatch.setattr(celery_app, "AsyncResult", lambda task_id: results[task_id])

    spawner = CeleryTaskSpawner()
    handle = await spawner.status("failed-1")
    assert handle.state == TaskState.FAILED
    assert handle.error == "LLM HTTP error: 500"
    assert (await spawner.status("never-seen")).state == TaskState.QUEUED


def test_factory_picks_backend():
    generator = LessonGenerator(ScriptedWriter(), InMemoryLessonStore())
    assert isinstance(build_task_spawner(make_settings(), generator), AsyncioTaskSpawner)
    assert isinstance(build_task_spawner(make_settings(TASK_BACKEND="celery"), generator), CeleryTaskSpawner)


@pytest.mark.anyio
async def test_registry_keeps_only_the_newest_finished_handles(store, writer):
    spawner = AsyncioTaskSpawner(LessonGenerator(writer, store), max_handles=3)
    writer.gate.set()

    ids = []
    for n in range(8):
        lesson = await store.insert_pending(f"t{n}")
        ids.append(lesson.id)
        await spawner.spawn(lesson.id, f"t{n}")
        await spawner.wait(lesson.id, timeout=5)

    assert spawner.tracked == 3
    assert await spawner.status(ids[0]) is None
    assert (await spawner.status(ids[-1])).state == TaskState.SUCCEEDED


@pytest.mark.anyio
async def test_registry_never_drops_in_flight_handles(store, writer):
    spawner = AsyncioTaskSpawner(LessonGenerator(writer, store), max_handles=2)

    ids = []
    for n in range(4):
        lesson = await store.insert_pending(f"t{n}")
        ids.append(lesson.id)
        await spawner.spawn(lesson.id, f"t{n}")

    assert spawner.tracked == 4
    writer.gate.set()
    for lesson_id in ids:
        await spawner.wait(lesson_id, timeout=5)
    assert spawner.tracked == 2


@pytest.mark.anyio
async def test_celery_status_for_task_enqueued_elsewhere(monkeypatch):
    from app.tasks import celery_app

    monkeypatch.setattr(
        celery_app, "AsyncResult", lambda task_id: SimpleNamespace(state="PENDING", result=None, date_done=None),
    )
    store = InMemoryLessonStore()
    generator = LessonGenerator(ScriptedWriter(), store)
    service = LessonService(store, CeleryTaskSpawner(), generator)

    pending = await store.insert_pending("queued in another process")
    task = await service.task_status(pending.id)
    assert task.state == "queued"
    assert task.backend == "celery"

    finished = await store.insert_pending("never enqueued")
    await store.mark_failed(finished.id)
    with pytest.raises(NotFoundError):
        await service.task_status(finished.id)
    with pytest.raises(NotFoundError):
        await service.task_status("no-such-lesson")
