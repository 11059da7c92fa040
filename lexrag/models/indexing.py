"""Reporting models returned by the document indexer."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class IndexingResult(BaseModel):
    """Summary of one ``index_documents`` / ``reindex_documents`` run.

    Printed by the ``ingest`` and ``reindex`` CLI commands.
    """

    model_config = ConfigDict(frozen=True)

    documents_processed: int = Field(default=0, ge=0)
    documents_failed: int = Field(default=0, ge=0)
    chunks_created: int = Field(default=0, ge=0)
    chunks_stored: int = Field(default=0, ge=0)
    chunks_deleted: int = Field(
        default=0, ge=0, description="Stale chunks removed before re-adding (reindex only)."
    )
    total_embeddings: int = Field(
        default=0, ge=0, description="Vector store size after the run."
    )
    elapsed_seconds: float = Field(default=0.0, ge=0.0)
    failed_paths: list[str] = Field(default_factory=list)


class IndexStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_embeddings: int = Field(default=0, ge=0)
    documents_indexed: int = Field(
        default=0, ge=0, description="Distinct documents indexed by this process."
    )
    last_indexed_at: datetime | None = None
