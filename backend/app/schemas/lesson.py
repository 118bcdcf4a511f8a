from __future__ import annotations
"""Pydantic v2 schemas for the Lesson record and its generation task."""

from datetime import datetime

from pydantic import BaseModel, Field


class LessonCreate(BaseModel):
    """Schema for submitting a lesson outline.

    Presence and blankness are checked by the service so that a missing
    outline and an empty one fail the same way.
    """

    outline: str | None = Field(None, description="Free-text lesson outline")


class LessonCreated(BaseModel):
    id: str


class LessonSummary(BaseModel):
    """List projection: never carries content."""

    id: str
    title: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class LessonRead(BaseModel):
    """Schema for reading a full lesson record."""

    id: str
    title: str
    content: str = ""
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TaskRead(BaseModel):
    """Observable state of one spawned generation task."""

    task_id: str
    lesson_id: str
    backend: str
    state: str
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


class ErrorResponse(BaseModel):
    error: str
    type: str
