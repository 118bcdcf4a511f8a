from __future__ import annotations
"""Celery task for lesson generation (TASK_BACKEND=celery).

The task builds its own store and OpenRouter client, runs the same
generate-and-reconcile procedure as the in-process backend, and releases
both before returning. No retries: a failed generation is final.
"""

import logging

from celery import shared_task

from app.config import get_settings
from app.tasks import run_async

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=0, name="app.tasks.lesson_tasks.generate_lesson")
def generate_lesson(self, lesson_id: str, outline: str):
    """Generate content for one lesson and write the terminal status."""
    logger.info("Celery task %s: generating lesson %s", self.request.id, lesson_id)
    content = run_async(_generate(lesson_id, outline))
    return {"lesson_id": lesson_id, "status": "done", "content_length": len(content)}


async def _generate(lesson_id: str, outline: str) -> str:
    from app.services.wiring import build_components

    components = build_components(get_settings())
    try:
        await components.start()
        return await components.generator.run(lesson_id, outline)
    finally:
        await components.llm.aclose()
        await components.store.close()
