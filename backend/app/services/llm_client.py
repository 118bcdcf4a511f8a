"""OpenRouter chat-completions client used for lesson generation.

One request per call: no retry and no key rotation. The only timeout is the
httpx client timeout (LLM_TIMEOUT).
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from app.config import Settings
from app.exceptions import ConfigError, GenerationError

logger = logging.getLogger(__name__)


def _mask_key(key: str) -> str:
    """Mask an API key for safe logging: show first 8 and last 4 chars."""
    if len(key) <= 16:
        return "***"
    return f"{key[:8]}...{key[-4:]}"


class OpenRouterClient:
    """Thin async wrapper around ``POST {OPENROUTER_BASE_URL}/chat/completions``.

    A shared ``httpx.AsyncClient`` is created lazily and closed with
    ``aclose()``. Pass ``transport`` to route requests elsewhere (tests use
    ``httpx.MockTransport``).
    """

    def __init__(self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = settings.OPENROUTER_API_KEY
        self.base_url = settings.OPENROUTER_BASE_URL.rstrip("/")
        self.model = settings.LESSON_MODEL
        self.temperature = settings.LESSON_TEMPERATURE
        self.max_tokens = settings.LESSON_MAX_TOKENS
        self.timeout = float(settings.LLM_TIMEOUT)
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def completions_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "Lesson Generator",
        }

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        caller: str = "unknown",
    ) -> str:
        """Send one chat completion and return the message content.

        Raises:
            ConfigError: no API key configured.
            GenerationError: transport failure, non-2xx status, or a response
                without message content.
        """
        if not self.api_key:
            raise ConfigError("OpenRouter API key is not configured")

        model = model or self.model
        body: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }

        logger.info("[%s] LLM call model=%s key=%s", caller, model, _mask_key(self.api_key))
        t0 = time.time()
        try:
            response = await self._get_client().post(self.completions_url, headers=self._headers(), json=body)
        except httpx.TimeoutException as e:
            logger.warning("[%s] Timeout after %.0fs", caller, self.timeout)
            raise GenerationError(f"LLM call timed out after {self.timeout:.0f}s", upstream_status=408) from e
        except httpx.HTTPError as e:
            logger.warning("[%s] Transport error: %s", caller, e)
            raise GenerationError(f"LLM request failed: {e}") from e

        if response.status_code >= 400:
            logger.error("[%s] HTTP error %d: %s", caller, response.status_code, response.text[:500])
            raise GenerationError(
                f"LLM HTTP error: {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationError("LLM response did not contain message content") from e
        if not isinstance(content, str) or not content.strip():
            raise GenerationError("LLM returned empty content")

        logger.info(
            "[%s] LLM response OK, length=%d, %.0fms",
            caller, len(content), (time.time() - t0) * 1000,
        )
        return content

    async def check_health(self) -> dict[str, Any]:
        """Quick health check: send a tiny prompt to verify the key is valid."""
        result: dict[str, Any] = {"model": self.model, "key": _mask_key(self.api_key) if self.api_key else None}
        if not self.api_key:
            result.update(status="unconfigured", error="OpenRouter API key is not configured")
            return result

        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": "Hi"}],
            "max_tokens": 1,
        }
        t0 = time.time()
        try:
            resp = await self._get_client().post(self.completions_url, headers=self._headers(), json=body)
        except httpx.HTTPError as e:
            result.update(status="error", error=str(e))
            return result

        result["latency_ms"] = round((time.time() - t0) * 1000, 1)
        if resp.status_code == 200:
            result["status"] = "ok"
        else:
            result.update(status="error", http_status=resp.status_code)
        return result

    async def aclose(self) -> None:
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
        self._http_client = None
