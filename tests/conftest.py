"""Pytest configuration helpers.

Puts ``backend/`` on ``sys.path`` so tests can import the ``app`` package
regardless of how pytest is invoked, and provides an app wired to a
temporary SQLite database and a fake OpenRouter endpoint.
"""
import json
import os
import sys
from datetime import datetime, timedelta, timezone

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
BACKEND = os.path.join(ROOT, "backend")
if BACKEND not in sys.path:
    sys.path.insert(0, BACKEND)

import httpx  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.config import Settings  # noqa: E402
from app.exceptions import NotFoundError, StoreError  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models.lesson import LessonStatus, new_lesson_id  # noqa: E402
from app.schemas.lesson import LessonRead, LessonSummary  # noqa: E402
from app.services.stores.base import LessonStore  # noqa: E402

TEST_API_KEY = "sk-or-v1-test-0123456789abcdef"


class FakeOpenRouter:
    """Stands in for ``/chat/completions`` through ``httpx.MockTransport``."""

    def __init__(self):
        self.requests: list[dict] = []
        self.headers: list[httpx.Headers] = []
        self.status_code = 200
        self.content = "// Lesson: Florida\nconst questions: string[] = [];"
        self.gate = None  # optional asyncio.Event to hold responses

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.headers.append(request.headers)
        if self.gate is not None:
            await self.gate.wait()
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "upstream failure"}})
        return httpx.Response(
            200,
            json={"choices": [{"message": {"role": "assistant", "content": self.content}}]},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class InMemoryLessonStore(LessonStore):
    """Dict-backed store with the same transition rules as the real ones."""

    backend = "memory"

    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.fail_on: set[str] = set()

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_on:
            raise StoreError(f"{op} failed")

    async def insert_pending(self, title: str) -> LessonRead:
        self._maybe_fail("insert_pending")
        row = {
            "id": new_lesson_id(),
            "title": title,
            "content": "",
            "status": LessonStatus.PENDING.value,
            "created_at": datetime.now(timezone.utc),
        }
        self.rows[row["id"]] = row
        return LessonRead(**row)

    async def get(self, lesson_id: str) -> LessonRead:
        self._maybe_fail("get")
        if lesson_id not in self.rows:
            raise NotFoundError("Lesson not found")
        return LessonRead(**self.rows[lesson_id])

    async def list_summaries(self) -> list[LessonSummary]:
        rows = sorted(self.rows.values(), key=lambda r: r["created_at"], reverse=True)
        return [
            LessonSummary(id=r["id"], title=r["title"], status=r["status"], created_at=r["created_at"])
            for r in rows
        ]

    async def _finish(self, lesson_id: str, **values) -> None:
        if lesson_id not in self.rows:
            raise NotFoundError("Lesson not found")
        row = self.rows[lesson_id]
        if row["status"] != LessonStatus.PENDING.value:
            raise StoreError(f"Lesson {lesson_id} is already {row['status']}")
        row.update(values)

    async def complete(self, lesson_id: str, content: str) -> None:
        self._maybe_fail("complete")
        await self._finish(lesson_id, status=LessonStatus.DONE.value, content=content)

    async def mark_failed(self, lesson_id: str) -> None:
        self._maybe_fail("mark_failed")
        await self._finish(lesson_id, status=LessonStatus.FAILED.value)

    async def fail_stale_pending(self, older_than: timedelta) -> int:
        cutoff = datetime.now(timezone.utc) - older_than
        count = 0
        for row in self.rows.values():
            if row["status"] == LessonStatus.PENDING.value and row["created_at"] < cutoff:
                row["status"] = LessonStatus.FAILED.value
                count += 1
        return count

    async def check(self) -> dict:
        return {"status": "ok", "backend": self.backend}


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "",
        "STORE_BACKEND": "sql",
        "TASK_BACKEND": "asyncio",
        "OPENROUTER_API_KEY": TEST_API_KEY,
        "USE_MOCK_API": False,
        "DEBUG": False,
        "RECOVER_PENDING_ON_STARTUP": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'lessons.db'}"


@pytest.fixture
def settings(database_url) -> Settings:
    return make_settings(DATABASE_URL=database_url)


@pytest.fixture
def openrouter() -> FakeOpenRouter:
    return FakeOpenRouter()


@pytest.fixture
async def app(settings, openrouter):
    application = create_app(settings, llm_transport=openrouter.transport)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def wait_for_generation(app, lesson_id: str, timeout: float = 5.0):
    """Block until the in-process generation task for the lesson finishes."""
    return await app.state.components.spawner.wait(lesson_id, timeout=timeout)
