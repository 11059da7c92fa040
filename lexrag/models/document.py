"""Document, chunk and retrieval data models for the lexrag corpus.

Defines Pydantic v2 models for source documents, their derived metadata,
the chunks stored in the vector store, and the results returned by a
similarity search.  All models use frozen config: metadata is derived once
per document and a document record is never mutated after chunking (a
chunked copy is produced with ``model_copy`` instead).

Flow overview:
    1. PARSING: ``DocumentParser`` reads a markdown file into a
       :class:`DocumentRecord` whose :class:`DocumentMetadata` comes from
       ``MetadataExtractor``.
    2. CHUNKING: ``DocumentChunker`` splits ``full_text`` into
       :class:`DocumentChunk` windows with character offsets.
    3. STORAGE / RETRIEVAL: the vector store keeps chunk embeddings and
       answers queries with :class:`SearchResult` lists.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

#: Category used when a path carries no category marker segment.
UNKNOWN_CATEGORY = "unknown"


# ---------------------------------------------------------------------------
# DocumentMetadata: Derived once per document.
# ---------------------------------------------------------------------------
class DocumentMetadata(BaseModel):
    """Structured fields derived from a document's path and front matter."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(description="Corpus category taken from the path.")
    identifier: str | None = Field(
        default=None,
        description="Document identifier code, e.g. a law number like '321AC0000000001'.",
    )
    date: dt.date | None = Field(default=None, description="Promulgation / document date.")
    era: str | None = Field(
        default=None, description="Era tag in native script, e.g. '昭和'."
    )
    file_name: str = Field(description="Base file name including extension.")
    file_path: str = Field(description="Full path of the source file.")
    last_modified: dt.datetime = Field(description="Source file modification time.")
    extra: dict[str, Any] = Field(
        default_factory=dict,
        description="Front-matter keys with no dedicated field.",
    )


# ---------------------------------------------------------------------------
# DocumentRecord: One parsed source document.
# ---------------------------------------------------------------------------
class DocumentRecord(BaseModel):
    """A parsed source document, owned by the indexing pipeline."""

    model_config = ConfigDict(frozen=True)

    path: str
    title: str
    last_modified: dt.datetime
    metadata: DocumentMetadata
    full_text: str = Field(description="Markdown body with front matter removed.")
    chunk_ids: list[str] = Field(
        default_factory=list, description="Ids of the chunks cut from this document."
    )


# ---------------------------------------------------------------------------
# DocumentChunk: The unit of embedding and retrieval.
# ---------------------------------------------------------------------------
class DocumentChunk(BaseModel):
    """A contiguous slice of a document's text.

    ``start`` / ``end`` are character offsets into the owning document's
    ``full_text``; ``content`` is that slice with surrounding whitespace
    trimmed.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique chunk identifier (UUID).")
    document_path: str
    title: str
    content: str = Field(min_length=1)
    chunk_index: int = Field(ge=0)
    start: int = Field(ge=0)
    end: int = Field(ge=1)
    embedding: list[float] | None = None
    metadata: DocumentMetadata

    @model_validator(mode="after")
    def _check_span(self) -> DocumentChunk:
        if self.end <= self.start:
            raise ValueError(f"chunk end ({self.end}) must be greater than start ({self.start})")
        if not self.content.strip():
            raise ValueError("chunk content must not be blank")
        return self


# ---------------------------------------------------------------------------
# Search options and results.
# ---------------------------------------------------------------------------
class MetadataFilter(BaseModel):
    """Conjunctive exact-match filter over chunk metadata."""

    model_config = ConfigDict(frozen=True)

    category: str | None = None
    identifier: str | None = None
    era: str | None = None

    def as_dict(self) -> dict[str, str]:
        """Return only the populated fields."""
        return {k: v for k, v in self.model_dump().items() if v}


class SearchOptions(BaseModel):
    """Parameters for a similarity search."""

    model_config = ConfigDict(frozen=True)

    limit: int = Field(default=10, ge=1)
    threshold: float = Field(default=0.0, ge=0.0, le=1.0)
    filters: MetadataFilter | None = None


class SearchResult(BaseModel):
    """A chunk returned by a similarity search with its score."""

    model_config = ConfigDict(frozen=True)

    chunk: DocumentChunk
    score: float = Field(ge=0.0, le=1.0, description="Similarity, higher is more relevant.")
    highlights: list[str] = Field(default_factory=list)


class SourceCitation(BaseModel):
    """A reference linking an answer back to a retrieved chunk."""

    model_config = ConfigDict(frozen=True)

    document_path: str
    title: str
    excerpt: str
    score: float
    chunk_id: str
