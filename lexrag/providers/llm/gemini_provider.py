"""Google Gemini LLM provider adapter.

Uses the ``google-generativeai`` SDK.  Its ``generate_content`` call is
synchronous, so each request runs in a worker thread via
:func:`asyncio.to_thread` to keep the event loop free.
"""

from __future__ import annotations

import asyncio

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions

from lexrag.models.provider import GeminiConfig
from lexrag.providers.llm.base import CompletionLLMProvider
from lexrag.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class GeminiLLMProvider(CompletionLLMProvider):
    """Generation provider backed by the Gemini ``generateContent`` API.

    Has no dedicated health endpoint; the orchestrator probes it with a
    minimal real call.
    """

    def __init__(self, config: GeminiConfig) -> None:
        self._config = config
        self._model = config.model
        genai.configure(api_key=config.api_key)

    def _generate(
        self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int
    ) -> object:
        model = genai.GenerativeModel(
            model_name=self._model,
            system_instruction=system_prompt,
        )
        return model.generate_content(
            user_prompt,
            generation_config=genai.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
        )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> str:
        try:
            response = await asyncio.to_thread(
                self._generate, system_prompt, user_prompt, temperature, max_tokens
            )
            # .text raises ValueError when the candidate was blocked
            content = response.text
        except google_exceptions.GoogleAPIError as exc:
            raise LLMError(
                message=f"Gemini API error: {exc}",
                provider_name=self.get_provider_name(),
                original_error=exc,
            ) from exc
        except ValueError as exc:
            raise LLMError(
                message=f"Gemini returned no usable text: {exc}",
                provider_name=self.get_provider_name(),
                original_error=exc,
            ) from exc

        if not content:
            raise LLMError(
                message="Gemini returned empty response",
                provider_name=self.get_provider_name(),
            )
        usage = getattr(response, "usage_metadata", None)
        logger.info(
            "gemini_completion",
            model=self._model,
            tokens=getattr(usage, "total_token_count", None),
        )
        return content

    def get_provider_name(self) -> str:
        return "gemini"
