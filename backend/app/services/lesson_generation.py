"""Background lesson generation: generate content, then reconcile the record.

The generator holds no lesson state of its own. It reads nothing from the
store and writes exactly one terminal transition per run.
"""

from __future__ import annotations

import asyncio
import logging

from app.exceptions import ConfigError
from app.services.lesson_writer import LessonWriter
from app.services.stores.base import LessonStore
from app.services.tracing import add_trace_attributes, trace

logger = logging.getLogger(__name__)

TRACE_NAME = "generate-lesson-content"


class LessonGenerator:
    """Runs one generation for ``(lesson_id, outline)``.

    Success moves the record to ``done`` with the content. Any failure,
    cancellation included, moves it to ``failed`` best-effort and re-raises
    the original error so the task handle records it.
    """

    def __init__(self, writer: LessonWriter, store: LessonStore):
        self.writer = writer
        self.store = store

    async def run(self, lesson_id: str, outline: str) -> str:
        async with trace(TRACE_NAME, lesson_id=lesson_id, outline_length=len(outline)):
            try:
                if not self.writer.is_configured:
                    raise ConfigError("OpenRouter API key is not configured")

                content = await self.writer.write(outline)
                add_trace_attributes(content_length=len(content))

                await self.store.complete(lesson_id, content)
            except (Exception, asyncio.CancelledError) as exc:
                add_trace_attributes(error=str(exc) or type(exc).__name__)
                logger.error("Lesson %s generation failed: %s", lesson_id, exc or type(exc).__name__)
                await self.mark_failed(lesson_id)
                raise

        logger.info("Lesson %s generated (%d chars)", lesson_id, len(content))
        return content

    async def mark_failed(self, lesson_id: str) -> None:
        """Best-effort pending -> failed; a store error here is only logged."""
        try:
            await self.store.mark_failed(lesson_id)
        except Exception as e:
            # The record may stay pending; startup recovery is the only cleanup.
            logger.error("Could not mark lesson %s as failed: %s", lesson_id, e)
