from __future__ import annotations
"""Lesson ORM model: one generation request and its outcome."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

TITLE_MAX_LENGTH = 50


class LessonStatus(str, enum.Enum):
    """Lesson lifecycle statuses. Only pending is non-terminal."""

    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


# Explicit valid transitions: status -> set of reachable statuses
VALID_TRANSITIONS: dict[LessonStatus, set[LessonStatus]] = {
    LessonStatus.PENDING: {LessonStatus.DONE, LessonStatus.FAILED},
    LessonStatus.DONE: set(),
    LessonStatus.FAILED: set(),
}


def make_title(outline: str) -> str:
    """Derive the display title: first 50 characters, with "..." when truncated."""
    if len(outline) > TITLE_MAX_LENGTH:
        return outline[:TITLE_MAX_LENGTH] + "..."
    return outline


def new_lesson_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def transition_sources(target: LessonStatus) -> list[str]:
    """Statuses a record must currently hold to move to ``target``."""
    return sorted(status.value for status, reachable in VALID_TRANSITIONS.items() if target in reachable)


class Lesson(Base):
    """A persisted lesson record."""

    __tablename__ = "lessons"
    __table_args__ = {
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_lesson_id,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(
        Text().with_variant(mysql.LONGTEXT(), "mysql"),
        nullable=False,
        default="",
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LessonStatus.PENDING.value, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True).with_variant(mysql.DATETIME(fsp=6), "mysql"),
        nullable=False,
        default=utcnow,
        index=True,
    )
