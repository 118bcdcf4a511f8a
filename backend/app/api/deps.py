"""FastAPI dependencies resolving the objects built at startup."""

from __future__ import annotations

from fastapi import Request

from app.config import Settings
from app.services.lessons import LessonService
from app.services.wiring import LessonComponents


def get_components(request: Request) -> LessonComponents:
    return request.app.state.components


def get_lesson_service(request: Request) -> LessonService:
    return request.app.state.components.service


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
