"""Estimated spend per provider call.

Token counts are estimated from character length (about four characters per
token); no provider tokenizer is consulted.  Rates are USD per 1K tokens and
only approximate list prices; providers missing from the table cost zero.
"""

from __future__ import annotations

import math
import threading
from collections import deque
from datetime import datetime, timezone

import structlog

from lexrag.models.provider import AIProvider, CostRecord, CostSummary, OperationKind

logger = structlog.get_logger(logger_name=__name__)

#: Records kept in the ledger; older ones are discarded.
MAX_COST_RECORDS = 1000

#: provider -> operation -> (input rate, output rate), USD per 1K tokens.
COST_RATES: dict[AIProvider, dict[OperationKind, tuple[float, float]]] = {
    AIProvider.OPENAI: {
        OperationKind.EMBEDDING: (0.00002, 0.0),
        OperationKind.GENERATION: (0.0005, 0.0015),
    },
    AIProvider.GEMINI: {
        OperationKind.EMBEDDING: (0.00015, 0.0),
        OperationKind.GENERATION: (0.0025, 0.0075),
    },
}


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def estimate_cost(
    provider: AIProvider,
    operation: OperationKind,
    input_tokens: float,
    output_tokens: float = 0.0,
) -> float:
    input_rate, output_rate = COST_RATES.get(provider, {}).get(operation, (0.0, 0.0))
    return input_tokens / 1000 * input_rate + output_tokens / 1000 * output_rate


class CostLedger:
    """Bounded, lock-guarded list of :class:`CostRecord` entries."""

    def __init__(
        self, budget_limit: float | None = None, max_records: int = MAX_COST_RECORDS
    ) -> None:
        self._budget_limit = budget_limit
        self._records: deque[CostRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def record(
        self,
        provider: AIProvider,
        operation: OperationKind,
        input_tokens: float,
        output_tokens: float = 0.0,
    ) -> CostRecord:
        entry = CostRecord(
            provider=provider,
            operation=operation,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=estimate_cost(provider, operation, input_tokens, output_tokens),
            timestamp=datetime.now(timezone.utc),
        )
        with self._lock:
            self._records.append(entry)
            total = sum(r.cost for r in self._records)

        if self._budget_limit is not None and total > self._budget_limit:
            logger.warning(
                "cost_budget_exceeded",
                total=round(total, 6),
                budget_limit=self._budget_limit,
                provider=provider.value,
            )
        return entry

    def records(self) -> list[CostRecord]:
        with self._lock:
            return list(self._records)

    def summary(self) -> CostSummary:
        """Total and per-provider sums over the retained records."""
        by_provider: dict[AIProvider, float] = {}
        with self._lock:
            for entry in self._records:
                by_provider[entry.provider] = by_provider.get(entry.provider, 0.0) + entry.cost
        return CostSummary(total=sum(by_provider.values()), by_provider=by_provider)
