"""Unit tests for LLM provider adapters: OpenAI, Anthropic, Gemini, Ollama.

SDK clients are replaced with mocks; no network access is made.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, PropertyMock, patch

import anthropic
import httpx
import openai
import pytest
from google.api_core import exceptions as google_exceptions

from lexrag.interfaces.embedding_provider import ProbeMode
from lexrag.models.provider import AnthropicConfig, GeminiConfig, LocalConfig, OpenAIConfig
from lexrag.providers.llm import (
    AnthropicLLMProvider,
    GeminiLLMProvider,
    OllamaLLMProvider,
    OpenAILLMProvider,
)
from lexrag.providers.llm.prompts import SYSTEM_PROMPT
from lexrag.utils.errors import LLMError
from tests.conftest import make_result


def _chat_response(content: str | None) -> MagicMock:
    mock_message = MagicMock()
    mock_message.content = content
    mock_choice = MagicMock()
    mock_choice.message = mock_message
    mock_response = MagicMock()
    mock_response.choices = [mock_choice]
    mock_response.usage = MagicMock(total_tokens=100)
    return mock_response


def _http_client(response=None, error: Exception | None = None) -> AsyncMock:
    mock_http_client = AsyncMock()
    mock_http_client.__aenter__ = AsyncMock(return_value=mock_http_client)
    mock_http_client.__aexit__ = AsyncMock(return_value=False)
    if error is not None:
        mock_http_client.get = AsyncMock(side_effect=error)
    else:
        mock_http_client.get = AsyncMock(return_value=response)
    return mock_http_client


# ======================================================================
# OpenAI
# ======================================================================


class TestOpenAILLMProvider:
    @pytest.fixture()
    def config(self) -> OpenAIConfig:
        return OpenAIConfig(api_key="sk-test", model="gpt-4o-mini")

    def test_provider_name_and_probe_mode(self, config) -> None:
        provider = OpenAILLMProvider(config)
        assert provider.get_provider_name() == "openai"
        assert provider.probe_mode() is ProbeMode.HEALTH_CHECK

    @pytest.mark.asyncio
    async def test_complete_success(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response("回答です"))

        with patch("lexrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(config)
            result = await provider.complete("system prompt", "user prompt", temperature=0.1)

        assert result == "回答です"
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.1
        assert kwargs["messages"][0] == {"role": "system", "content": "system prompt"}

    @pytest.mark.asyncio
    async def test_complete_api_error(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIError(
                message="Rate limit exceeded",
                request=MagicMock(),
                body=None,
            )
        )

        with patch("lexrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(config)
            with pytest.raises(LLMError) as exc_info:
                await provider.complete("system", "user")

        assert exc_info.value.provider_name == "openai"
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_complete_empty_response(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response(""))

        with patch("lexrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(config)
            with pytest.raises(LLMError, match="empty"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_generate_response_uses_shared_prompts(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response("第九条です"))

        with patch("lexrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(config)
            answer = await provider.generate_response("戦争の放棄とは", [make_result()])

        assert answer == "第九条です"
        messages = mock_client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0]["content"] == SYSTEM_PROMPT
        assert "【文書1】日本国憲法" in messages[1]["content"]
        assert messages[1]["content"].endswith("ユーザーの質問: 戦争の放棄とは")

    @pytest.mark.asyncio
    async def test_generate_related_questions_parses_numbered_lines(self, config) -> None:
        reply = "1. 自衛隊は合憲ですか？\n2. 交戦権とは？\n3. 前文の意味は？\n4. 余分"
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response(reply))

        with patch("lexrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(config)
            questions = await provider.generate_related_questions("第九条", [make_result()])

        assert questions == ["自衛隊は合憲ですか？", "交戦権とは？", "前文の意味は？"]

    @pytest.mark.asyncio
    async def test_health_check_success(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.models.list = AsyncMock(return_value=MagicMock())

        with patch("lexrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(config)
            assert await provider.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_failure(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.models.list = AsyncMock(
            side_effect=openai.APIError(message="Invalid key", request=MagicMock(), body=None)
        )

        with patch("lexrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(config)
            assert await provider.health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_without_key(self) -> None:
        with patch("lexrag.providers.llm.openai_provider.openai.AsyncOpenAI"):
            provider = OpenAILLMProvider(OpenAIConfig(api_key=""))
            assert await provider.health_check() is False

    def test_base_url_forwarded(self) -> None:
        config = OpenAIConfig(api_key="sk", base_url="https://gateway.example/v1", organization="org")
        with patch("lexrag.providers.llm.openai_provider.openai.AsyncOpenAI") as mock_cls:
            OpenAILLMProvider(config)
        kwargs = mock_cls.call_args.kwargs
        assert kwargs["base_url"] == "https://gateway.example/v1"
        assert kwargs["organization"] == "org"


# ======================================================================
# Anthropic
# ======================================================================


class TestAnthropicLLMProvider:
    @pytest.fixture()
    def config(self) -> AnthropicConfig:
        return AnthropicConfig(api_key="sk-ant-test")

    def test_minimal_call_probe(self, config) -> None:
        provider = AnthropicLLMProvider(config)
        assert provider.get_provider_name() == "anthropic"
        assert provider.probe_mode() is ProbeMode.MINIMAL_CALL

    @pytest.mark.asyncio
    async def test_complete_joins_text_blocks(self, config) -> None:
        text_block = MagicMock(type="text", text="第一段落")
        tool_block = MagicMock(type="tool_use", text="ignored")
        second = MagicMock(type="text", text="第二段落")
        mock_response = MagicMock()
        mock_response.content = [text_block, tool_block, second]
        mock_response.usage = MagicMock(input_tokens=50, output_tokens=50)

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        with patch("lexrag.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(config)
            result = await provider.complete("system", "user")

        assert result == "第一段落\n第二段落"
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "system"
        assert kwargs["messages"] == [{"role": "user", "content": "user"}]

    @pytest.mark.asyncio
    async def test_complete_without_text(self, config) -> None:
        mock_response = MagicMock()
        mock_response.content = []
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        with patch("lexrag.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(config)
            with pytest.raises(LLMError):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_complete_api_error(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(
            side_effect=anthropic.APIError(message="overloaded", request=MagicMock(), body=None)
        )

        with patch("lexrag.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(config)
            with pytest.raises(LLMError) as exc_info:
                await provider.complete("system", "user")

        assert exc_info.value.provider_name == "anthropic"


# ======================================================================
# Gemini
# ======================================================================


class TestGeminiLLMProvider:
    @pytest.fixture()
    def config(self) -> GeminiConfig:
        return GeminiConfig(api_key="gm-test", model="gemini-1.5-flash")

    @pytest.mark.asyncio
    async def test_complete_success(self, config) -> None:
        with patch("lexrag.providers.llm.gemini_provider.genai") as mock_genai:
            model = mock_genai.GenerativeModel.return_value
            model.generate_content.return_value = MagicMock(text="ジェミニの回答")

            provider = GeminiLLMProvider(config)
            result = await provider.complete("system", "user", temperature=0.2, max_tokens=64)

        assert result == "ジェミニの回答"
        mock_genai.configure.assert_called_once_with(api_key="gm-test")
        mock_genai.GenerativeModel.assert_called_once_with(
            model_name="gemini-1.5-flash", system_instruction="system"
        )
        mock_genai.GenerationConfig.assert_called_once_with(temperature=0.2, max_output_tokens=64)

    @pytest.mark.asyncio
    async def test_api_error(self, config) -> None:
        with patch("lexrag.providers.llm.gemini_provider.genai") as mock_genai:
            mock_genai.GenerativeModel.return_value.generate_content.side_effect = (
                google_exceptions.ResourceExhausted("quota exceeded")
            )
            provider = GeminiLLMProvider(config)
            with pytest.raises(LLMError, match="quota"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_blocked_candidate(self, config) -> None:
        response = MagicMock()
        type(response).text = PropertyMock(side_effect=ValueError("blocked by safety"))
        with patch("lexrag.providers.llm.gemini_provider.genai") as mock_genai:
            mock_genai.GenerativeModel.return_value.generate_content.return_value = response
            provider = GeminiLLMProvider(config)
            with pytest.raises(LLMError, match="no usable text"):
                await provider.complete("system", "user")

    def test_probe_mode(self, config) -> None:
        with patch("lexrag.providers.llm.gemini_provider.genai"):
            provider = GeminiLLMProvider(config)
        assert provider.probe_mode() is ProbeMode.MINIMAL_CALL
        assert provider.get_provider_name() == "gemini"


# ======================================================================
# Ollama
# ======================================================================


class TestOllamaLLMProvider:
    @pytest.fixture()
    def config(self) -> LocalConfig:
        return LocalConfig(base_url="http://localhost:11434/", model="llama3.1")

    def test_client_points_at_v1_endpoint(self, config) -> None:
        with patch("lexrag.providers.llm.ollama_provider.openai.AsyncOpenAI") as mock_cls:
            provider = OllamaLLMProvider(config)
        assert mock_cls.call_args.kwargs["base_url"] == "http://localhost:11434/v1"
        assert provider.get_provider_name() == "local"
        assert provider.probe_mode() is ProbeMode.HEALTH_CHECK

    @pytest.mark.asyncio
    async def test_complete_success(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response("ローカル"))

        with patch("lexrag.providers.llm.ollama_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OllamaLLMProvider(config)
            assert await provider.complete("system", "user") == "ローカル"

    @pytest.mark.asyncio
    async def test_health_check_success(self, config) -> None:
        mock_http_client = _http_client(response=MagicMock(status_code=200))

        with patch("lexrag.providers.llm.ollama_provider.httpx.AsyncClient", return_value=mock_http_client):
            provider = OllamaLLMProvider(config)
            assert await provider.health_check() is True

        mock_http_client.get.assert_awaited_once_with("http://localhost:11434/api/tags")

    @pytest.mark.asyncio
    async def test_health_check_unreachable(self, config) -> None:
        mock_http_client = _http_client(error=httpx.ConnectError("Connection refused"))

        with patch("lexrag.providers.llm.ollama_provider.httpx.AsyncClient", return_value=mock_http_client):
            provider = OllamaLLMProvider(config)
            assert await provider.health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_bad_status(self, config) -> None:
        mock_http_client = _http_client(response=MagicMock(status_code=500))

        with patch("lexrag.providers.llm.ollama_provider.httpx.AsyncClient", return_value=mock_http_client):
            provider = OllamaLLMProvider(config)
            assert await provider.health_check() is False
