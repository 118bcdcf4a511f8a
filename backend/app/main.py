from __future__ import annotations
"""Lesson Generator: FastAPI application entry point.

Mounts the API and page routes, configures CORS, serves static assets,
and builds the store / generation pipeline on startup.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.router import api_router
from app.config import Settings, get_settings
from app.exceptions import LessonAppError, register_exception_handlers
from app.services.stores import LessonStore
from app.services.wiring import build_components
from app.web.pages import STATIC_DIR
from app.web.pages import router as pages_router

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    *,
    store: LessonStore | None = None,
    llm_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the application.

    ``store`` and ``llm_transport`` replace the configured record store and
    the OpenRouter HTTP transport (used by tests and local tooling).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: build the pipeline on startup, drain it on shutdown."""
        logger.info("%s starting up...", settings.APP_NAME)
        logger.info("USE_MOCK_API: %s", settings.USE_MOCK_API)

        components = build_components(settings, store=store, llm_transport=llm_transport)
        logger.info(
            "Record store: %s, task backend: %s",
            components.store.backend, components.spawner.backend,
        )
        try:
            await components.start()
        except LessonAppError as e:
            # Endpoints still answer; store operations report the error.
            logger.error("Record store initialisation failed: %s", e)

        if settings.RECOVER_PENDING_ON_STARTUP:
            # In-process tasks do not survive a restart.
            try:
                await components.service.recover_stale(timedelta(minutes=settings.STALE_PENDING_MINUTES))
            except LessonAppError as e:
                logger.warning("Startup recovery failed (non-fatal): %s", e)

        app.state.components = components
        yield

        await components.close()
        logger.info("%s shut down", settings.APP_NAME)

    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Submit a lesson outline, generate the lesson asynchronously, poll for the result.",
        version="0.1.0",
        lifespan=lifespan,
        redirect_slashes=False,
    )
    app.state.settings = settings

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    app.include_router(pages_router)
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/health")
    async def health(request: Request):
        """Liveness plus which backends are configured."""
        components = request.app.state.components
        return {
            "status": "healthy",
            "store_backend": components.store.backend,
            "task_backend": components.spawner.backend,
            "generation_configured": components.writer.is_configured,
            "mock_mode": settings.USE_MOCK_API,
        }

    return app


configure_logging(get_settings())
app = create_app()
