"""System status endpoint: checks health of all dependent services."""

from __future__ import annotations

import asyncio
import socket
import time
import urllib.parse
from typing import Any

import redis
from fastapi import APIRouter, Depends

from app.api.deps import get_components
from app.config import Settings
from app.services.wiring import LessonComponents

router = APIRouter()


@router.get("/check-llm")
async def check_llm(components: LessonComponents = Depends(get_components)):
    """Pre-check the OpenRouter key with a one-token request."""
    return await components.llm.check_health()


def _check_redis(settings: Settings) -> dict[str, Any]:
    """Check Redis connectivity and basic info."""
    t0 = time.time()
    try:
        r = redis.Redis.from_url(settings.REDIS_URL, socket_timeout=3)
        info = r.info("server")
        ping = r.ping()
        latency_ms = round((time.time() - t0) * 1000, 1)
        return {
            "status": "ok" if ping else "error",
            "latency_ms": latency_ms,
            "version": info.get("redis_version", "unknown"),
            "url": settings.REDIS_URL,
        }
    except Exception as e:
        return {
            "status": "error",
            "error": str(e),
            "url": settings.REDIS_URL,
        }


def _check_celery_workers() -> dict[str, Any]:
    """Check Celery workers via ping broadcast."""
    from app.tasks import celery_app

    try:
        inspector = celery_app.control.inspect(timeout=2)
        ping_result = inspector.ping()

        if not ping_result:
            return {
                "status": "offline",
                "workers": [],
                "count": 0,
                "message": "No running Celery worker detected",
            }

        workers = [
            {"name": name, "status": "ok" if pong.get("ok") == "pong" else "error"}
            for name, pong in ping_result.items()
        ]
        active = inspector.active() or {}
        reserved = inspector.reserved() or {}

        return {
            "status": "ok",
            "workers": workers,
            "count": len(workers),
            "active_tasks": sum(len(tasks) for tasks in active.values()),
            "reserved_tasks": sum(len(tasks) for tasks in reserved.values()),
        }
    except Exception as e:
        return {
            "status": "error",
            "error": str(e),
            "workers": [],
            "count": 0,
        }


def _check_external_api(name: str, url: str) -> dict[str, Any]:
    """Quick connectivity check for external API (DNS + TCP only)."""
    t0 = time.time()
    try:
        parsed = urllib.parse.urlparse(url)
        host = parsed.hostname
        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        sock = socket.create_connection((host, port), timeout=3)
        sock.close()
        latency_ms = round((time.time() - t0) * 1000, 1)
        return {
            "name": name,
            "status": "ok",
            "latency_ms": latency_ms,
            "endpoint": url,
        }
    except Exception as e:
        return {
            "name": name,
            "status": "error",
            "error": str(e),
            "endpoint": url,
        }


@router.get("/status")
async def system_status(components: LessonComponents = Depends(get_components)):
    """Full system status check: store, generation API, and (for Celery) broker + workers."""
    settings = components.settings

    checks: dict[str, Any] = {"store": components.store.check()}
    if not settings.USE_MOCK_API:
        checks["openrouter"] = asyncio.to_thread(
            _check_external_api, "OpenRouter", settings.OPENROUTER_BASE_URL
        )
    if components.spawner.backend == "celery":
        checks["redis"] = asyncio.to_thread(_check_redis, settings)
        checks["celery"] = asyncio.to_thread(_check_celery_workers)

    results = dict(zip(checks, await asyncio.gather(*checks.values())))

    services = {k: v for k, v in results.items() if k != "openrouter"}
    all_ok = all(s.get("status") == "ok" for s in services.values()) and components.writer.is_configured

    return {
        "overall": "ok" if all_ok else "degraded",
        "services": services,
        "external_apis": [results["openrouter"]] if "openrouter" in results else [],
        "settings": {
            "store_backend": components.store.backend,
            "task_backend": components.spawner.backend,
            "model": settings.LESSON_MODEL,
            "generation_configured": components.writer.is_configured,
            "use_mock_api": settings.USE_MOCK_API,
        },
    }
