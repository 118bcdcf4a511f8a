"""Server-rendered pages: the outline form with a polling list, and the lesson view."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.api.deps import get_app_settings, get_lesson_service
from app.config import Settings
from app.exceptions import LessonAppError
from app.services.lessons import LessonService

_WEB_DIR = Path(__file__).parent
STATIC_DIR = _WEB_DIR / "static"

STATUS_LABELS = {
    "pending": "Generating",
    "done": "Generated",
    "failed": "Failed",
}

templates = Jinja2Templates(directory=str(_WEB_DIR / "templates"))
templates.env.filters["status_label"] = lambda status: STATUS_LABELS.get(status, "Unknown")
templates.env.filters["timestamp"] = lambda dt: dt.strftime("%Y-%m-%d %H:%M:%S UTC") if dt else ""

router = APIRouter(include_in_schema=False)


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    service: LessonService = Depends(get_lesson_service),
    settings: Settings = Depends(get_app_settings),
):
    lessons, error = [], None
    try:
        lessons = await service.list_lessons()
    except LessonAppError as e:
        error = e.message
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "lessons": lessons,
            "error": error,
            "poll_interval_ms": settings.LIST_POLL_INTERVAL_SECONDS * 1000,
            "status_labels": STATUS_LABELS,
        },
    )


@router.get("/lessons/{lesson_id}", response_class=HTMLResponse)
async def lesson_detail(
    request: Request,
    lesson_id: str,
    service: LessonService = Depends(get_lesson_service),
):
    """Render one lesson from a single fetch; a pending lesson is not re-polled."""
    try:
        lesson = await service.get(lesson_id)
    except LessonAppError as e:
        return templates.TemplateResponse(
            request,
            "message.html",
            {"title": "Lesson not found" if e.status_code == 404 else "Error", "message": e.message},
            status_code=e.status_code,
        )
    return templates.TemplateResponse(request, "lesson.html", {"lesson": lesson})
