"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`CompletionLLMProvider`.
When ``base_url`` is configured (Azure-style gateways, TogetherAI, ...) the
client points at that URL instead of the default OpenAI endpoint.
"""

from __future__ import annotations

import openai
import structlog

from lexrag.interfaces.embedding_provider import ProbeMode
from lexrag.models.provider import OpenAIConfig
from lexrag.providers.llm.base import CompletionLLMProvider
from lexrag.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class OpenAILLMProvider(CompletionLLMProvider):
    """Generation provider backed by the OpenAI chat completions API.

    Declares a dedicated health check: listing models confirms the key is
    accepted without paying for inference.
    """

    def __init__(self, config: OpenAIConfig, timeout: float = 60.0) -> None:
        self._config = config
        client_kwargs: dict = {
            "api_key": config.api_key,
            "timeout": openai.Timeout(timeout, connect=5.0),
        }
        if config.organization:
            client_kwargs["organization"] = config.organization
        if config.base_url:
            client_kwargs["base_url"] = config.base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = config.model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> str:
        """Generate a text completion via the chat completions API."""
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
        except openai.APITimeoutError as exc:
            raise LLMError(
                message="OpenAI completion timed out",
                provider_name=self.get_provider_name(),
                original_error=exc,
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"OpenAI API error: {exc}",
                provider_name=self.get_provider_name(),
                original_error=exc,
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError(
                message="OpenAI returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_completion",
            model=self._model,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def probe_mode(self) -> ProbeMode:
        return ProbeMode.HEALTH_CHECK

    async def health_check(self) -> bool:
        """Try listing models to verify the API key works."""
        if not self._config.api_key:
            return False
        try:
            await self._client.models.list()
            return True
        except openai.APIError as exc:
            logger.warning("openai_health_check_failed", error=str(exc))
            return False

    def get_provider_name(self) -> str:
        return "openai"
