"""SQLAlchemy-backed lesson store (SQLite via aiosqlite, MySQL via asyncmy)."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select, text, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from app.database import build_engine, build_session_factory, init_db
from app.exceptions import NotFoundError, StoreError
from app.models.lesson import Lesson, LessonStatus, transition_sources, utcnow
from app.schemas.lesson import LessonRead, LessonSummary
from app.services.stores.base import LessonStore

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored value is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_read(lesson: Lesson) -> LessonRead:
    return LessonRead(
        id=lesson.id,
        title=lesson.title,
        content=lesson.content or "",
        status=lesson.status,
        created_at=_aware(lesson.created_at),
    )


class SqlLessonStore(LessonStore):
    """Lesson store over an async SQLAlchemy engine."""

    backend = "sql"

    def __init__(self, database_url: str, *, echo: bool = False, auto_create: bool = True,
                 engine: AsyncEngine | None = None):
        self.database_url = database_url
        self.auto_create = auto_create
        self.engine = engine or build_engine(database_url, echo=echo)
        self._session_factory = build_session_factory(self.engine)

    async def init(self) -> None:
        if not self.auto_create:
            logger.info("Skipping create_all (schema managed by alembic)")
            return
        try:
            await init_db(self.engine)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not create lesson tables: {exc}") from exc

    async def close(self) -> None:
        await self.engine.dispose()

    async def insert_pending(self, title: str) -> LessonRead:
        lesson = Lesson(title=title, content="", status=LessonStatus.PENDING.value)
        try:
            async with self._session_factory() as session:
                session.add(lesson)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Insert failed for lesson title=%r: %s", title, exc)
            raise StoreError(f"Failed to create lesson: {exc}") from exc
        logger.info("Lesson %s inserted (pending)", lesson.id)
        return _to_read(lesson)

    async def get(self, lesson_id: str) -> LessonRead:
        try:
            async with self._session_factory() as session:
                lesson = await session.get(Lesson, lesson_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to fetch lesson: {exc}") from exc
        if lesson is None:
            raise NotFoundError("Lesson not found")
        return _to_read(lesson)

    async def list_summaries(self) -> list[LessonSummary]:
        stmt = (
            select(Lesson.id, Lesson.title, Lesson.status, Lesson.created_at)
            .order_by(Lesson.created_at.desc())
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to fetch lessons: {exc}") from exc
        return [
            LessonSummary(id=row.id, title=row.title, status=row.status, created_at=_aware(row.created_at))
            for row in rows
        ]

    async def complete(self, lesson_id: str, content: str) -> None:
        await self._finish(lesson_id, LessonStatus.DONE, content=content)

    async def mark_failed(self, lesson_id: str) -> None:
        await self._finish(lesson_id, LessonStatus.FAILED)

    async def _finish(self, lesson_id: str, target: LessonStatus, content: str | None = None) -> None:
        """Conditional update, applied only from a status that may reach ``target``."""
        values: dict[str, Any] = {"status": target.value}
        if content is not None:
            values["content"] = content
        stmt = (
            update(Lesson)
            .where(Lesson.id == lesson_id, Lesson.status.in_(transition_sources(target)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        current: str | None = None
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
                updated = result.rowcount
                if not updated:
                    current = await session.scalar(select(Lesson.status).where(Lesson.id == lesson_id))
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to update lesson {lesson_id}: {exc}") from exc

        if not updated:
            if current is None:
                raise NotFoundError("Lesson not found")
            raise StoreError(f"Lesson {lesson_id} is already {current}")
        logger.info("Lesson %s -> %s", lesson_id, target.value)

    async def fail_stale_pending(self, older_than: timedelta) -> int:
        cutoff = utcnow() - older_than
        stmt = (
            update(Lesson)
            .where(Lesson.status == LessonStatus.PENDING.value, Lesson.created_at < cutoff)
            .values(status=LessonStatus.FAILED.value)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to recover pending lessons: {exc}") from exc
        return result.rowcount or 0

    async def check(self) -> dict[str, Any]:
        """Check database connectivity."""
        url = make_url(self.database_url)
        t0 = time.time()
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {
                "status": "ok",
                "backend": self.backend,
                "latency_ms": round((time.time() - t0) * 1000, 1),
                "dialect": url.get_backend_name(),
                "database": url.database,
            }
        except Exception as e:
            return {
                "status": "error",
                "backend": self.backend,
                "error": str(e),
                "dialect": url.get_backend_name(),
            }
