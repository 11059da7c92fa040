"""Shared prompt-driven implementation of :class:`ILLMProvider`.

Concrete providers only implement :meth:`CompletionLLMProvider.complete`
(one system + user prompt in, text out); answer generation and follow-up
question generation are built on top of it here so every backend phrases
its requests identically.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from lexrag.interfaces.llm_provider import ILLMProvider
from lexrag.providers.llm import prompts

if TYPE_CHECKING:
    from lexrag.models.conversation import ConversationMessage
    from lexrag.models.document import SearchResult

#: Prompt used by the orchestrator's minimal-call liveness probe.
PROBE_PROMPT = "健康チェック用のテストです。「OK」と回答してください。"


class CompletionLLMProvider(ILLMProvider):
    """Base class for providers exposing a plain chat-completion call."""

    answer_temperature: float = 0.3
    answer_max_tokens: int = 2000
    related_temperature: float = 0.7
    related_max_tokens: int = 300

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> str:
        """Generate a text completion from the model.

        Raises
        ------
        lexrag.utils.errors.LLMError
            If the API call fails or returns an empty response.
        """

    async def generate_response(
        self,
        prompt: str,
        context: list[SearchResult],
        conversation: list[ConversationMessage] | None = None,
    ) -> str:
        return await self.complete(
            system_prompt=prompts.SYSTEM_PROMPT,
            user_prompt=prompts.build_user_prompt(prompt, context, conversation),
            temperature=self.answer_temperature,
            max_tokens=self.answer_max_tokens,
        )

    async def generate_related_questions(
        self, query: str, context: list[SearchResult]
    ) -> list[str]:
        reply = await self.complete(
            system_prompt=prompts.SYSTEM_PROMPT,
            user_prompt=prompts.build_related_questions_prompt(query, context),
            temperature=self.related_temperature,
            max_tokens=self.related_max_tokens,
        )
        return prompts.parse_related_questions(reply)
