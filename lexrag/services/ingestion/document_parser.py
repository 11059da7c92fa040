"""Markdown document parsing.

Reads a UTF-8 markdown file, separates an optional YAML front-matter block
(``---`` fenced, at the very top of the file), picks a title, and attaches
metadata from :class:`MetadataExtractor`.
"""

from __future__ import annotations

import datetime as dt
import re
from pathlib import Path
from typing import Any

import structlog
import yaml

from lexrag.models.document import DocumentRecord
from lexrag.services.ingestion.metadata_extractor import MetadataExtractor
from lexrag.utils.errors import DocumentParseError

logger = structlog.get_logger(logger_name=__name__)

_FRONT_MATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_HEADING = re.compile(r"^#\s+(.+?)\s*#*\s*$", re.MULTILINE)


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Return ``(front_matter, body)``.

    Raises
    ------
    DocumentParseError
        If the front-matter block is not valid YAML.
    """
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text
    try:
        loaded = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise DocumentParseError(message=f"invalid YAML front matter: {exc}") from exc
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise DocumentParseError(
            message=f"front matter must be a mapping, got {type(loaded).__name__}"
        )
    return loaded, text[match.end():]


def extract_title(body: str, fallback: str) -> str:
    """First ``#`` heading, else the first non-blank non-fence line, else *fallback*."""
    match = _HEADING.search(body)
    if match:
        return match.group(1).strip()
    for line in body.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("```"):
            return stripped.lstrip("#").strip() or fallback
    return fallback


class DocumentParser:
    def __init__(self, extractor: MetadataExtractor | None = None) -> None:
        self._extractor = extractor or MetadataExtractor()

    def parse_markdown_file(self, path: str | Path) -> DocumentRecord:
        """Read and parse one markdown file from disk."""
        file_path = Path(path)
        try:
            text = file_path.read_text(encoding="utf-8")
            mtime = file_path.stat().st_mtime
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentParseError(message=f"cannot read {file_path}: {exc}") from exc

        return self.parse_text(
            str(file_path),
            text,
            dt.datetime.fromtimestamp(mtime, tz=dt.timezone.utc),
        )

    def parse_text(
        self, path: str, text: str, last_modified: dt.datetime | None = None
    ) -> DocumentRecord:
        """Parse in-memory markdown *text* as if it had been read from *path*."""
        try:
            front_matter, body = split_front_matter(text)
        except DocumentParseError as exc:
            raise DocumentParseError(message=f"{path}: {exc.message}") from exc

        modified = last_modified or dt.datetime.now(dt.timezone.utc)
        metadata = self._extractor.extract(path, front_matter, modified)
        title = front_matter.get("title")
        if not isinstance(title, str) or not title.strip():
            title = extract_title(body, Path(path).stem)

        logger.debug("document_parsed", path=path, title=title, length=len(body))
        return DocumentRecord(
            path=path,
            title=title.strip(),
            last_modified=modified,
            metadata=metadata,
            full_text=body,
        )
