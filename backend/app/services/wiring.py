"""Builds the lesson pipeline objects from one Settings instance.

The web app keeps the result on ``app.state``; Celery workers build a
short-lived set per task.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from app.config import Settings
from app.services.lesson_generation import LessonGenerator
from app.services.lesson_writer import LessonWriter
from app.services.lessons import LessonService
from app.services.llm_client import OpenRouterClient
from app.services.stores import LessonStore, build_lesson_store
from app.services.task_spawner import TaskSpawner, build_task_spawner

logger = logging.getLogger(__name__)


@dataclass
class LessonComponents:
    settings: Settings
    store: LessonStore
    llm: OpenRouterClient
    writer: LessonWriter
    generator: LessonGenerator
    spawner: TaskSpawner
    service: LessonService

    async def start(self) -> None:
        await self.store.init()

    async def close(self) -> None:
        """Stop background work first, then release clients."""
        await self.spawner.shutdown()
        await self.llm.aclose()
        await self.store.close()


def build_components(
    settings: Settings,
    *,
    store: LessonStore | None = None,
    llm_transport: httpx.AsyncBaseTransport | None = None,
) -> LessonComponents:
    store = store or build_lesson_store(settings)
    llm = OpenRouterClient(settings, transport=llm_transport)
    writer = LessonWriter(settings, llm)
    generator = LessonGenerator(writer, store)
    spawner = build_task_spawner(settings, generator)
    service = LessonService(store, spawner, generator)

    if not writer.is_configured:
        logger.warning("OPENROUTER_API_KEY is not set; new lessons will fail generation")

    return LessonComponents(
        settings=settings,
        store=store,
        llm=llm,
        writer=writer,
        generator=generator,
        spawner=spawner,
        service=service,
    )
