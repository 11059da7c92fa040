"""Provider configuration, health and cost models.

``ProviderConfig`` is consumed once when the
:class:`~lexrag.orchestration.provider_orchestrator.ProviderOrchestrator` is
constructed.  ``ProviderHealthStatus`` and ``CostRecord`` are immutable
snapshots; the orchestrator replaces them rather than mutating them.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AIProvider(str, Enum):
    """Interchangeable embedding / generation backends."""

    OPENAI = "openai"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    LOCAL = "local"


class OperationKind(str, Enum):
    EMBEDDING = "embedding"
    GENERATION = "generation"


class ProviderState(str, Enum):
    """Per-provider health state: ``unknown -> healthy <-> unhealthy``."""

    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


# ---------------------------------------------------------------------------
# Per-provider configuration blocks
# ---------------------------------------------------------------------------
class OpenAIConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    organization: str | None = None
    base_url: str | None = None
    model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"


class GeminiConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    model: str = "gemini-1.5-flash"
    embedding_model: str = "models/gemini-embedding-001"


class AnthropicConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    model: str = "claude-3-5-haiku-latest"


class LocalConfig(BaseModel):
    """Ollama server settings (no credentials, only a base URL)."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "http://localhost:11434"
    model: str = "llama3.1"
    embedding_model: str = "nomic-embed-text"


class ProviderConfig(BaseModel):
    """Primary/fallback chain plus health, cost and per-provider settings."""

    model_config = ConfigDict(frozen=True)

    primary: AIProvider
    fallback: list[AIProvider] = Field(default_factory=list)
    health_check_interval_ms: int = Field(default=0, ge=0, description="0 disables.")
    health_check_timeout_ms: int = Field(default=10_000, gt=0)
    request_timeout_ms: int = Field(default=60_000, gt=0)
    cost_optimization: bool = False
    budget_limit: float | None = Field(
        default=None, ge=0.0, description="Monthly USD cap; advisory only."
    )
    preferred_region: str | None = None

    openai: OpenAIConfig | None = None
    gemini: GeminiConfig | None = None
    anthropic: AnthropicConfig | None = None
    local: LocalConfig | None = None

    def provider_chain(self) -> list[AIProvider]:
        """Return ``[primary, *fallback]`` without duplicates, order kept."""
        chain: list[AIProvider] = []
        for provider in [self.primary, *self.fallback]:
            if provider not in chain:
                chain.append(provider)
        return chain


# ---------------------------------------------------------------------------
# Health and cost snapshots
# ---------------------------------------------------------------------------
class ProviderHealthStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: AIProvider
    state: ProviderState = ProviderState.UNKNOWN
    healthy: bool = False
    last_check: datetime | None = None
    latency_ms: float | None = None
    error_count: int = Field(default=0, ge=0)
    error_rate: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Percentage of failures among the most recent 100 observations.",
    )
    last_error: str | None = None


class CostRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: AIProvider
    operation: OperationKind
    input_tokens: float = Field(ge=0.0)
    output_tokens: float = Field(default=0.0, ge=0.0)
    cost: float = Field(ge=0.0, description="USD.")
    timestamp: datetime


class CostSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: float = 0.0
    by_provider: dict[AIProvider, float] = Field(default_factory=dict)
