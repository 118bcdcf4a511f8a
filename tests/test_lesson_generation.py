"""Tests for the generate-and-reconcile procedure."""

import asyncio
import logging

import pytest

from app.exceptions import ConfigError, GenerationError, StoreError
from app.services.lesson_generation import LessonGenerator
from conftest import InMemoryLessonStore


class FakeWriter:
    def __init__(self, content="// lesson", error=None, configured=True):
        self.content = content
        self.error = error
        self.configured = configured
        self.calls = []
        self.gate = None

    @property
    def is_configured(self):
        return self.configured

    async def write(self, outline):
        self.calls.append(outline)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.content


@pytest.fixture
def store():
    return InMemoryLessonStore()


@pytest.mark.anyio
async def test_success_completes_record(store, caplog):
    caplog.set_level(logging.INFO)
    lesson = await store.insert_pending("Florida")
    generator = LessonGenerator(FakeWriter(content="quiz"), store)

    assert await generator.run(lesson.id, "Florida") == "quiz"

    row = await store.get(lesson.id)
    assert row.status == "done"
    assert row.content == "quiz"
    assert "[TRACE] Completed operation: generate-lesson-content" in caplog.text


@pytest.mark.anyio
async def test_generation_error_marks_failed_and_reraises(store, caplog):
    caplog.set_level(logging.INFO)
    lesson = await store.insert_pending("Florida")
    generator = LessonGenerator(FakeWriter(error=GenerationError("LLM HTTP error: 503")), store)

    with pytest.raises(GenerationError):
        await generator.run(lesson.id, "Florida")

    assert (await store.get(lesson.id)).status == "failed"
    assert "[TRACE] Failed operation: generate-lesson-content" in caplog.text
    assert "LLM HTTP error: 503" in caplog.text


@pytest.mark.anyio
async def test_missing_credential_fails_before_calling_writer(store):
    lesson = await store.insert_pending("Florida")
    writer = FakeWriter(configured=False)

    with pytest.raises(ConfigError):
        await LessonGenerator(writer, store).run(lesson.id, "Florida")

    assert writer.calls == []
    assert (await store.get(lesson.id)).status == "failed"


@pytest.mark.anyio
async def test_failed_success_update_marks_failed(store):
    lesson = await store.insert_pending("Florida")
    store.fail_on.add("complete")

    with pytest.raises(StoreError, match="complete failed"):
        await LessonGenerator(FakeWriter(), store).run(lesson.id, "Florida")

    assert (await store.get(lesson.id)).status == "failed"


@pytest.mark.anyio
async def test_secondary_failure_is_only_logged(store, caplog):
    lesson = await store.insert_pending("Florida")
    store.fail_on.add("mark_failed")
    generator = LessonGenerator(FakeWriter(error=GenerationError("boom")), store)

    with pytest.raises(GenerationError, match="boom"):
        await generator.run(lesson.id, "Florida")

    assert (await store.get(lesson.id)).status == "pending"
    assert f"Could not mark lesson {lesson.id} as failed" in caplog.text


@pytest.mark.anyio
async def test_cancellation_marks_failed(store):
    lesson = await store.insert_pending("Florida")
    writer = FakeWriter()
    writer.gate = asyncio.Event()
    task = asyncio.create_task(LessonGenerator(writer, store).run(lesson.id, "Florida"))

    while not writer.calls:
        await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert (await store.get(lesson.id)).status == "failed"
