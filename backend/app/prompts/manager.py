from __future__ import annotations
"""Prompt template manager: loads lesson prompts from files, supports style presets."""

import logging
from pathlib import Path
from typing import ClassVar

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).parent / "templates"


class PromptManager:
    """Load and cache prompt templates from the filesystem.

    Templates are organized by style:
        prompts/templates/{style}/{template_name}.txt

    Falls back to 'default' style if the requested style doesn't have
    the template. Placeholders are written as ``{name}``.
    """

    _cache: ClassVar[dict[str, str]] = {}

    @classmethod
    def get_prompt(cls, template_name: str, style: str = "default") -> str:
        """Get a prompt template by name and style.

        Returns an empty string when neither the style nor 'default' has it.
        """
        cache_key = f"{style}/{template_name}"
        if cache_key in cls._cache:
            return cls._cache[cache_key]

        path = _TEMPLATES_DIR / style / f"{template_name}.txt"
        if not path.exists() and style != "default":
            path = _TEMPLATES_DIR / "default" / f"{template_name}.txt"

        if not path.exists():
            logger.warning("Prompt template not found: %s/%s.txt", style, template_name)
            return ""

        text = path.read_text(encoding="utf-8").strip()
        cls._cache[cache_key] = text
        return text

    @classmethod
    def render(cls, template_name: str, style: str = "default", **values: str) -> str:
        """Fill ``{name}`` placeholders without interpreting other braces."""
        text = cls.get_prompt(template_name, style)
        for key, value in values.items():
            text = text.replace("{" + key + "}", value)
        return text
