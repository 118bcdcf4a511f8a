"""Lightweight tracing shim: logs start, completion and failure with durations.

Spans are not exported anywhere; they only exist for the log lines and for
callers that want to inspect the attributes collected during an operation.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

logger = logging.getLogger(__name__)


@dataclass
class Span:
    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    started_at: float = field(default_factory=time.perf_counter)
    duration_ms: int | None = None
    error: str | None = None

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)


_current_span: ContextVar[Span | None] = ContextVar("current_span", default=None)


@asynccontextmanager
async def trace(name: str, **attributes: Any) -> AsyncIterator[Span]:
    """Wrap an async operation in a span.

    Exceptions (cancellation included) are logged and re-raised unchanged.
    """
    span = Span(name=name, attributes=dict(attributes))
    token = _current_span.set(span)
    logger.info("[TRACE] Starting operation: %s %s", name, span.attributes or "")
    try:
        yield span
    except BaseException as e:
        span.duration_ms = span.elapsed_ms()
        span.error = str(e) or type(e).__name__
        logger.warning(
            "[TRACE] Failed operation: %s after %dms with error: %s",
            name, span.duration_ms, span.error,
        )
        raise
    else:
        span.duration_ms = span.elapsed_ms()
        logger.info("[TRACE] Completed operation: %s in %dms", name, span.duration_ms)
    finally:
        _current_span.reset(token)


def current_span() -> Span | None:
    return _current_span.get()


def add_trace_attributes(**attributes: Any) -> None:
    """Attach attributes to the active span (no-op outside a trace)."""
    span = _current_span.get()
    if span is None:
        return
    span.attributes.update(attributes)
    logger.debug("[TRACE] %s attributes: %s", span.name, attributes)
