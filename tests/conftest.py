"""Shared pytest fixtures for the lexrag test suite."""

from __future__ import annotations

import datetime as dt
import itertools
import math
from pathlib import Path
from typing import Any

import pytest

from lexrag.interfaces.embedding_provider import IEmbeddingProvider, ProbeMode
from lexrag.interfaces.llm_provider import ILLMProvider
from lexrag.models.document import (
    DocumentChunk,
    DocumentMetadata,
    DocumentRecord,
    SearchResult,
)
from lexrag.models.provider import (
    AIProvider,
    AnthropicConfig,
    GeminiConfig,
    LocalConfig,
    OpenAIConfig,
    ProviderConfig,
)

FIXED_TIME = dt.datetime(2024, 4, 1, 9, 0, tzinfo=dt.timezone.utc)

SAMPLE_LAW_TEXT = """\
# 日本国憲法

日本国民は、正当に選挙された国会における代表者を通じて行動し、われらとわれらの子孫のために、諸国民との協和による成果と、わが国全土にわたつて自由のもたらす恵沢を確保する。

第一条　天皇は、日本国の象徴であり日本国民統合の象徴であつて、この地位は、主権の存する日本国民の総意に基く。

第九条　日本国民は、正義と秩序を基調とする国際平和を誠実に希求し、国権の発動たる戦争と、武力による威嚇又は武力の行使は、国際紛争を解決する手段としては、永久にこれを放棄する。

第二十一条　集会、結社及び言論、出版その他一切の表現の自由は、これを保障する。検閲は、これをしてはならない。通信の秘密は、これを侵してはならない。
"""


# ---------------------------------------------------------------------------
# Model builders
# ---------------------------------------------------------------------------


def make_metadata(**overrides: Any) -> DocumentMetadata:
    fields: dict[str, Any] = {
        "category": "憲法",
        "identifier": "321CONSTITUTION",
        "date": dt.date(1946, 11, 3),
        "era": "昭和",
        "file_name": "321CONSTITUTION_19461103_000000000000000.md",
        "file_path": "data/markdown/憲法/321CONSTITUTION_19461103_000000000000000.md",
        "last_modified": FIXED_TIME,
    }
    fields.update(overrides)
    return DocumentMetadata(**fields)


def make_document(
    text: str = SAMPLE_LAW_TEXT,
    path: str = "data/markdown/憲法/321CONSTITUTION_19461103_000000000000000.md",
    title: str = "日本国憲法",
) -> DocumentRecord:
    return DocumentRecord(
        path=path,
        title=title,
        last_modified=FIXED_TIME,
        metadata=make_metadata(file_path=path, file_name=Path(path).name),
        full_text=text,
    )


def make_chunk(
    chunk_id: str = "c1",
    content: str = "第九条　戦争の放棄。国権の発動たる戦争は、永久にこれを放棄する。",
    chunk_index: int = 0,
    embedding: list[float] | None = None,
    document_path: str = "data/markdown/憲法/321CONSTITUTION_19461103_000000000000000.md",
    **metadata_overrides: Any,
) -> DocumentChunk:
    return DocumentChunk(
        id=chunk_id,
        document_path=document_path,
        title="日本国憲法",
        content=content,
        chunk_index=chunk_index,
        start=0,
        end=len(content),
        embedding=embedding,
        metadata=make_metadata(**metadata_overrides),
    )


def make_result(
    chunk_id: str = "c1", score: float = 0.9, highlights: list[str] | None = None
) -> SearchResult:
    return SearchResult(
        chunk=make_chunk(chunk_id=chunk_id),
        score=score,
        highlights=highlights if highlights is not None else ["第九条　戦争の放棄"],
    )


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


def char_vector(text: str, dims: int = 64) -> list[float]:
    """Deterministic bag-of-characters embedding, L2-normalised."""
    vector = [0.0] * dims
    for char in text:
        if not char.isspace():
            vector[ord(char) % dims] += 1.0
    norm = math.sqrt(sum(v * v for v in vector)) or 1.0
    return [v / norm for v in vector]


class FakeEmbeddingProvider(IEmbeddingProvider):
    """In-process embedding provider with controllable failures."""

    def __init__(
        self,
        name: str = "fake",
        healthy: bool = True,
        mode: ProbeMode = ProbeMode.MINIMAL_CALL,
        fail_texts: set[str] | None = None,
    ) -> None:
        self.name = name
        self.healthy = healthy
        self.mode = mode
        self.fail_texts = fail_texts or set()
        self.calls: list[str] = []

    async def generate_embedding(self, text: str) -> list[float]:
        self.calls.append(text)
        if not self.healthy or text in self.fail_texts:
            raise RuntimeError(f"{self.name} embedding unavailable")
        return char_vector(text)

    async def generate_embeddings(self, texts: list[str]) -> list[list[float] | None]:
        vectors: list[list[float] | None] = []
        for text in texts:
            try:
                vectors.append(await self.generate_embedding(text))
            except RuntimeError:
                vectors.append(None)
        return vectors

    def probe_mode(self) -> ProbeMode:
        return self.mode

    async def health_check(self) -> bool:
        return self.healthy

    def get_provider_name(self) -> str:
        return self.name


class FakeLLMProvider(ILLMProvider):
    def __init__(
        self,
        name: str = "fake",
        answer: str = "第九条は戦争の放棄を定めています。",
        related: list[str] | None = None,
        healthy: bool = True,
    ) -> None:
        self.name = name
        self.answer = answer
        self.related = related if related is not None else ["自衛隊は合憲ですか？"]
        self.healthy = healthy
        self.response_calls: list[tuple[str, list[SearchResult], Any]] = []

    async def generate_response(self, prompt, context, conversation=None) -> str:
        if not self.healthy:
            raise RuntimeError(f"{self.name} generation unavailable")
        self.response_calls.append((prompt, list(context), conversation))
        return self.answer

    async def generate_related_questions(self, query, context) -> list[str]:
        if not self.healthy:
            raise RuntimeError(f"{self.name} generation unavailable")
        return list(self.related)

    def get_provider_name(self) -> str:
        return self.name


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_document() -> DocumentRecord:
    return make_document()


@pytest.fixture
def sequential_ids():
    """An id factory yielding chunk-0, chunk-1, ..."""
    counter = itertools.count()
    return lambda: f"chunk-{next(counter)}"


@pytest.fixture
def provider_config() -> ProviderConfig:
    """OpenAI primary with Gemini and local fallbacks, all configured."""
    return ProviderConfig(
        primary=AIProvider.OPENAI,
        fallback=[AIProvider.GEMINI, AIProvider.LOCAL],
        health_check_timeout_ms=1000,
        request_timeout_ms=1000,
        openai=OpenAIConfig(api_key="sk-test"),
        gemini=GeminiConfig(api_key="gm-test"),
        anthropic=AnthropicConfig(api_key="sk-ant-test"),
        local=LocalConfig(),
    )


@pytest.fixture
def markdown_corpus(tmp_path: Path) -> Path:
    """A tiny on-disk corpus laid out like the e-Gov markdown export."""
    root = tmp_path / "data" / "markdown"
    constitution = root / "憲法"
    constitution.mkdir(parents=True)
    (constitution / "321CONSTITUTION_19461103_000000000000000.md").write_text(
        SAMPLE_LAW_TEXT, encoding="utf-8"
    )
    civil = root / "民法"
    civil.mkdir()
    (civil / "129AC0000000089_20240401_506AC0000000033.md").write_text(
        "---\nera: 明治\ntitle: 民法\n---\n# 民法\n\n"
        "第一条　私権は、公共の福祉に適合しなければならない。\n\n"
        "第三条　私権の享有は、出生に始まる。\n",
        encoding="utf-8",
    )
    return root
