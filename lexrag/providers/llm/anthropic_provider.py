"""Anthropic LLM provider adapter.

Wraps the ``anthropic`` async client to implement
:class:`CompletionLLMProvider` via the Claude Messages API.  The system
prompt is a top-level parameter rather than a message, and the response is
a list of content blocks of which only the text blocks are kept.

Anthropic offers no embedding endpoint, so this provider only covers the
generation capability; the orchestrator skips it for embeddings.
"""

from __future__ import annotations

import anthropic
import structlog

from lexrag.models.provider import AnthropicConfig
from lexrag.providers.llm.base import CompletionLLMProvider
from lexrag.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class AnthropicLLMProvider(CompletionLLMProvider):
    """Generation provider backed by the Anthropic Claude API."""

    def __init__(self, config: AnthropicConfig, timeout: float = 60.0) -> None:
        self._config = config
        self._client = anthropic.AsyncAnthropic(api_key=config.api_key, timeout=timeout)
        self._model = config.model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> str:
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
            )
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
                original_error=exc,
            ) from exc

        text_blocks = [block.text for block in response.content if block.type == "text"]
        if not text_blocks:
            raise LLMError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "anthropic_completion",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return "\n".join(text_blocks)

    def get_provider_name(self) -> str:
        return "anthropic"
