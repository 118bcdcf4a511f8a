"""Record store implementations and the factory that picks one from settings."""

from __future__ import annotations

import logging

from app.config import Settings
from app.services.stores.base import LessonStore
from app.services.stores.sql_store import SqlLessonStore
from app.services.stores.unconfigured import UnconfiguredLessonStore

logger = logging.getLogger(__name__)

__all__ = [
    "LessonStore",
    "SqlLessonStore",
    "UnconfiguredLessonStore",
    "build_lesson_store",
]


def build_lesson_store(settings: Settings) -> LessonStore:
    """Build the store selected by STORE_BACKEND.

    A backend missing its URL or credential yields an UnconfiguredLessonStore
    instead of failing startup.
    """
    backend = settings.STORE_BACKEND.lower()

    if backend == "supabase":
        if not (settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY):
            return _unconfigured("Supabase URL or service role key is not configured")
        if not settings.SUPABASE_URL.startswith(("http://", "https://")):
            return _unconfigured("Supabase URL must start with http:// or https://")
        from app.services.stores.supabase_store import SupabaseLessonStore

        return SupabaseLessonStore(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_ROLE_KEY,
            table=settings.SUPABASE_TABLE,
        )

    if backend == "sql":
        if not settings.DATABASE_URL:
            return _unconfigured("DATABASE_URL is not configured")
        return SqlLessonStore(
            settings.DATABASE_URL,
            echo=settings.DEBUG,
            auto_create=settings.DB_AUTO_CREATE,
        )

    return _unconfigured(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND!r}")


def _unconfigured(reason: str) -> LessonStore:
    logger.warning("Record store unavailable: %s", reason)
    return UnconfiguredLessonStore(reason)
