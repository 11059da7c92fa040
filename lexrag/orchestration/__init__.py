from lexrag.orchestration.cost_ledger import CostLedger, estimate_cost, estimate_tokens
from lexrag.orchestration.health import HealthRegistry
from lexrag.orchestration.provider_orchestrator import ProviderOrchestrator
from lexrag.orchestration.registry import ProviderFactories, default_registry
from lexrag.orchestration.wrappers import TrackedEmbeddingService, TrackedLLMService

__all__ = [
    "CostLedger",
    "HealthRegistry",
    "ProviderFactories",
    "ProviderOrchestrator",
    "TrackedEmbeddingService",
    "TrackedLLMService",
    "default_registry",
    "estimate_cost",
    "estimate_tokens",
]
