"""Character-window chunking with natural break points.

Splits a :class:`~lexrag.models.document.DocumentRecord` into
:class:`~lexrag.models.document.DocumentChunk` windows sized for embedding
models.  Statute text is mostly Japanese, which has no spaces between
words, so windows are measured in characters rather than tokens.

Before a window is cut, the chunker looks backward from the window end for
the strongest available break, in this order:

1. paragraph break (blank line)
2. end of sentence (``。！？!?`` or a period followed by whitespace)
3. line break
4. clause punctuation (``、，,；;``)
5. any whitespace

and cuts just after it.  Consecutive windows overlap by ``overlap``
characters so a provision spanning a boundary is retrievable from at least
one chunk.  Each window starts at least one character after the previous
one, so chunking always terminates, even with ``overlap >= chunk_size``.
"""

from __future__ import annotations

import re
import uuid
from typing import Callable

import structlog

from lexrag.models.document import DocumentChunk, DocumentRecord

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP = 200

#: How far past the window end a break may be searched for.
BREAK_LOOKAHEAD = 100

# Strongest first.
_BREAK_CLASSES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\n\n"),
    re.compile(r"[。！？!?]|\.(?=\s)"),
    re.compile(r"\n"),
    re.compile(r"[、，,；;]"),
    re.compile(r"\s"),
)


def _new_chunk_id() -> str:
    return str(uuid.uuid4())


def find_break(text: str, start: int, window_end: int) -> int:
    """Return the cut position for the window ``[start, window_end)``.

    A break qualifies when it begins at or before ``window_end``; the cut
    falls right after it and must lie strictly after ``start``.  Falls back
    to ``window_end`` when no class yields a qualifying break.
    """
    search_end = min(len(text), window_end + BREAK_LOOKAHEAD)
    for pattern in _BREAK_CLASSES:
        cut = None
        for match in pattern.finditer(text, start, search_end):
            if match.start() > window_end:
                break
            cut = match.end()
        if cut is not None and cut > start:
            return cut
    return window_end


class DocumentChunker:
    """Splits document text into overlapping, break-aligned chunks.

    Parameters
    ----------
    chunk_size:
        Target window length in characters (default 1000).
    overlap:
        Characters shared by consecutive windows (default 200).
    id_factory:
        Produces chunk ids; defaults to random UUID4 strings.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_OVERLAP,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0:
            raise ValueError(f"overlap must be non-negative, got {overlap}")
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._id_factory = id_factory or _new_chunk_id

    def chunk(
        self,
        document: DocumentRecord,
        target_size: int | None = None,
        overlap: int | None = None,
    ) -> list[DocumentChunk]:
        """Split ``document.full_text`` into chunks.

        Returns an empty list for empty or whitespace-only text.  Text no
        longer than ``target_size`` yields exactly one chunk spanning
        ``[0, len(text))``.
        """
        size = self._chunk_size if target_size is None else target_size
        step_back = self._overlap if overlap is None else overlap
        if size < 1:
            raise ValueError(f"target_size must be positive, got {size}")
        if step_back < 0:
            raise ValueError(f"overlap must be non-negative, got {step_back}")

        text = document.full_text
        if not text.strip():
            return []

        if len(text) <= size:
            return [self._make_chunk(document, text.strip(), 0, 0, len(text))]

        chunks: list[DocumentChunk] = []
        start = 0
        while start < len(text):
            end = min(start + size, len(text))
            if end < len(text):
                end = find_break(text, start, end)

            content = text[start:end].strip()
            if content:
                chunks.append(self._make_chunk(document, content, len(chunks), start, end))

            if end >= len(text):
                break
            start = max(end - step_back, start + 1)

        logger.debug(
            "document_chunked",
            document=document.path,
            text_length=len(text),
            chunks=len(chunks),
        )
        return chunks

    def chunk_document(
        self, document: DocumentRecord
    ) -> tuple[DocumentRecord, list[DocumentChunk]]:
        """Chunk *document* and return a copy recording the chunk ids."""
        chunks = self.chunk(document)
        chunked = document.model_copy(update={"chunk_ids": [c.id for c in chunks]})
        return chunked, chunks

    def _make_chunk(
        self, document: DocumentRecord, content: str, index: int, start: int, end: int
    ) -> DocumentChunk:
        return DocumentChunk(
            id=self._id_factory(),
            document_path=document.path,
            title=document.title,
            content=content,
            chunk_index=index,
            start=start,
            end=end,
            metadata=document.metadata,
        )
