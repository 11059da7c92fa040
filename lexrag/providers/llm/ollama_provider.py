"""Ollama LLM provider adapter.

Wraps a local Ollama server via its OpenAI-compatible ``/v1`` endpoint,
reusing the ``openai`` client.  Liveness is checked against Ollama's native
``/api/tags`` endpoint with ``httpx``, which lists installed models without
running inference.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from lexrag.interfaces.embedding_provider import ProbeMode
from lexrag.models.provider import LocalConfig
from lexrag.providers.llm.base import CompletionLLMProvider
from lexrag.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


async def ollama_server_reachable(base_url: str, timeout: float = 5.0) -> bool:
    """Return ``True`` when the Ollama server answers ``GET /api/tags``."""
    if not base_url:
        return False
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(f"{base_url.rstrip('/')}/api/tags")
            return response.status_code == 200
    except httpx.HTTPError as exc:
        logger.warning("ollama_unreachable", base_url=base_url, error=str(exc))
        return False


class OllamaLLMProvider(CompletionLLMProvider):
    """Generation provider backed by a local Ollama server."""

    def __init__(self, config: LocalConfig, timeout: float = 60.0) -> None:
        self._config = config
        self._base_url = config.base_url
        # Ollama needs no key but the openai SDK rejects an empty one
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url.rstrip('/')}/v1",
            api_key="ollama",
            timeout=timeout,
        )
        self._model = config.model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"Ollama API error: {exc}",
                provider_name=self.get_provider_name(),
                original_error=exc,
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError(
                message="Ollama returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info("ollama_completion", model=self._model)
        return content

    def probe_mode(self) -> ProbeMode:
        return ProbeMode.HEALTH_CHECK

    async def health_check(self) -> bool:
        return await ollama_server_reachable(self._base_url)

    def get_provider_name(self) -> str:
        return "local"
