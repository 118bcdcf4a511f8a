"""Celery application configuration."""

import asyncio
import threading

from celery import Celery

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "lesson_generator",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "app.tasks.lesson_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,               # ACK after task completes, not on receive
    task_reject_on_worker_lost=False,   # lost generations are not re-run
    worker_prefetch_multiplier=1,       # Fetch one task at a time per worker
)

# Thread-local storage for event loop reuse within Celery workers
_thread_local = threading.local()


def run_async(coro):
    """Run async code in a sync Celery task.

    Reuses a thread-local event loop so repeated tasks in one worker
    thread share a loop instead of creating and closing one each time.
    """
    loop = getattr(_thread_local, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        _thread_local.loop = loop
    return loop.run_until_complete(coro)
