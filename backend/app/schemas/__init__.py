"""Pydantic v2 schemas package."""

from app.schemas.lesson import (
    ErrorResponse,
    LessonCreate,
    LessonCreated,
    LessonRead,
    LessonSummary,
    TaskRead,
)

__all__ = [
    "ErrorResponse",
    "LessonCreate",
    "LessonCreated",
    "LessonRead",
    "LessonSummary",
    "TaskRead",
]
