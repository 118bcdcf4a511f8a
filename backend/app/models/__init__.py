"""ORM model package: registers all models with Base.metadata."""

from app.models.lesson import (
    Lesson,
    LessonStatus,
    TITLE_MAX_LENGTH,
    VALID_TRANSITIONS,
    make_title,
    transition_sources,
)

__all__ = [
    "Lesson",
    "LessonStatus",
    "TITLE_MAX_LENGTH",
    "VALID_TRANSITIONS",
    "make_title",
    "transition_sources",
]
