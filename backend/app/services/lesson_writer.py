from __future__ import annotations
"""Lesson writer: turns an outline into lesson content.

Uses the OpenRouter client with the default prompt templates.
In mock mode, returns canned content for testing.
"""

import json
import logging

from app.config import Settings
from app.prompts.manager import PromptManager
from app.services.llm_client import OpenRouterClient

logger = logging.getLogger(__name__)

LESSON_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates educational lesson content in TypeScript."
)
LESSON_USER_PROMPT = "Create a TypeScript lesson based on this outline: '{outline}'."


class LessonWriter:
    def __init__(self, settings: Settings, llm: OpenRouterClient, *, style: str = "default"):
        self.llm = llm
        self.style = style
        self.use_mock = settings.USE_MOCK_API

    @property
    def is_configured(self) -> bool:
        """Generation needs an API key unless running mocked."""
        return self.use_mock or self.llm.is_configured

    def build_prompts(self, outline: str) -> tuple[str, str]:
        system_prompt = PromptManager.get_prompt("lesson_system", self.style) or LESSON_SYSTEM_PROMPT
        user_prompt = (
            PromptManager.render("lesson_user", self.style, outline=outline)
            or LESSON_USER_PROMPT.replace("{outline}", outline)
        )
        return system_prompt, user_prompt

    async def write(self, outline: str) -> str:
        """Generate lesson content for the outline."""
        if self.use_mock:
            return _mock_lesson(outline)

        system_prompt, user_prompt = self.build_prompts(outline)
        return await self.llm.complete(system_prompt, user_prompt, caller="lesson_writer")


# ---------------------------------------------------------------------------
# Mock implementation (USE_MOCK_API=True)
# ---------------------------------------------------------------------------

def _mock_lesson(outline: str) -> str:
    logger.info("[MOCK] Generating lesson for outline: %s", outline[:50])
    topic = outline.strip().replace("*/", "* /")
    return f"""/**
 * Lesson: {topic}
 *
 * Mock lesson content generated without calling OpenRouter.
 */

// 1. Describe the concept with a type
interface Concept {{
  name: string;
  summary: string;
}}

// 2. Build an example value
const concept: Concept = {{
  name: {json.dumps(topic)},
  summary: "Set USE_MOCK_API=false to generate real content.",
}};

// 3. Use it
console.log(`Studying ${{concept.name}}: ${{concept.summary}}`);
"""
