from __future__ import annotations
"""Lesson record API endpoints."""

from fastapi import APIRouter, Depends

from app.api.deps import get_lesson_service
from app.schemas.lesson import (
    ErrorResponse,
    LessonCreate,
    LessonCreated,
    LessonRead,
    LessonSummary,
    TaskRead,
)
from app.services.lessons import LessonService

router = APIRouter()

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("", response_model=LessonCreated, responses=_ERRORS)
@router.post("/", response_model=LessonCreated, include_in_schema=False)
async def create_lesson(
    data: LessonCreate | None = None,
    service: LessonService = Depends(get_lesson_service),
):
    """Create a pending lesson and start generating its content.

    Returns immediately with the new id; poll the list or the record for
    the outcome.
    """
    return await service.create(data.outline if data else None)


@router.get("", response_model=list[LessonSummary], responses=_ERRORS)
@router.get("/", response_model=list[LessonSummary], include_in_schema=False)
async def list_lessons(service: LessonService = Depends(get_lesson_service)):
    """List all lessons, newest first, without content."""
    return await service.list_lessons()


@router.get("/{lesson_id}", response_model=LessonRead, responses=_ERRORS)
async def get_lesson(lesson_id: str, service: LessonService = Depends(get_lesson_service)):
    """Get a lesson by ID."""
    return await service.get(lesson_id)


@router.get("/{lesson_id}/task", response_model=TaskRead, responses=_ERRORS)
async def get_lesson_task(lesson_id: str, service: LessonService = Depends(get_lesson_service)):
    """Get the state of the lesson's background generation task."""
    return await service.task_status(lesson_id)
