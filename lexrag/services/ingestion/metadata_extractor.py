"""Structured metadata derived from a document's path and front matter.

Law documents in the corpus follow the e-Gov export naming convention::

    data/markdown/<category>/<law number>_<YYYYMMDD>_<revision>.md
    e.g. data/markdown/憲法/321AC0000000001_19470503_000000000000000.md

From that path the extractor derives:

* **category** -- the directory directly under the ``markdown`` segment
* **identifier** -- the law number at the start of the file name
* **date** -- the first stand-alone 8-digit ``YYYYMMDD`` run
* **era** -- a Japanese era name (明治 .. 令和) in native or romanised form

Front-matter values override the derived ones.  Nothing here raises for a
malformed name; a field that cannot be derived is simply left empty.
"""

from __future__ import annotations

import datetime as dt
import os
import re
from pathlib import PurePath
from typing import Any

import structlog

from lexrag.models.document import UNKNOWN_CATEGORY, DocumentMetadata

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_CATEGORY_MARKER = "markdown"

# Most specific first: full e-Gov law number, looser law-number shape, bare prefix.
_IDENTIFIER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d{3}[A-Z]{2}\d{10}"),
    re.compile(r"^\d{3}[A-Z]+\d+"),
    re.compile(r"\d{3}[A-Z]+"),
)

_DATE_PATTERN = re.compile(r"(?<!\d)(\d{8})(?!\d)")
_EMPTY_DATE = "00000000"

#: (native name, romanised name), oldest first.
ERAS: tuple[tuple[str, str], ...] = (
    ("明治", "MEIJI"),
    ("大正", "TAISHO"),
    ("昭和", "SHOWA"),
    ("平成", "HEISEI"),
    ("令和", "REIWA"),
)

_IDENTIFIER_KEYS = ("identifier", "law_number", "lawNumber")


def extract_category(file_path: str, marker: str = DEFAULT_CATEGORY_MARKER) -> str:
    """Return the directory segment right after *marker*, else ``"unknown"``."""
    parts = PurePath(file_path).parts
    # the segment after the marker must be a directory, not the file itself
    for index, part in enumerate(parts[:-2]):
        if part == marker:
            return parts[index + 1]
    return UNKNOWN_CATEGORY


def extract_identifier(file_name: str) -> str | None:
    stem = PurePath(file_name).stem
    for pattern in _IDENTIFIER_PATTERNS:
        match = pattern.search(stem)
        if match:
            return match.group(0)
    return None


def extract_date(file_name: str) -> dt.date | None:
    """Parse the first stand-alone ``YYYYMMDD`` run in *file_name*.

    ``00000000`` and out-of-range or impossible dates give ``None``.
    """
    match = _DATE_PATTERN.search(PurePath(file_name).stem)
    if not match:
        return None
    raw = match.group(1)
    if raw == _EMPTY_DATE:
        return None
    year, month, day = int(raw[:4]), int(raw[4:6]), int(raw[6:])
    if year <= 1800 or not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    try:
        return dt.date(year, month, day)
    except ValueError:
        return None


def extract_era(file_path: str) -> str | None:
    upper = file_path.upper()
    for native, romanised in ERAS:
        if native in file_path or romanised in upper:
            return native
    return None


def _coerce_date(value: Any) -> dt.date | None:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


class MetadataExtractor:
    """Builds :class:`DocumentMetadata` for a source file.

    Parameters
    ----------
    category_marker:
        Path segment whose child directory names the category.
    """

    def __init__(self, category_marker: str = DEFAULT_CATEGORY_MARKER) -> None:
        self._category_marker = category_marker

    def extract(
        self,
        file_path: str,
        front_matter: dict[str, Any] | None = None,
        last_modified: dt.datetime | None = None,
    ) -> DocumentMetadata:
        file_name = os.path.basename(file_path)
        fields: dict[str, Any] = {
            "category": extract_category(file_path, self._category_marker),
            "identifier": extract_identifier(file_name),
            "date": extract_date(file_name),
            "era": extract_era(file_path),
        }

        extra: dict[str, Any] = {}
        for key, value in (front_matter or {}).items():
            if value is None:
                continue
            if key == "category":
                fields["category"] = str(value)
            elif key in _IDENTIFIER_KEYS:
                fields["identifier"] = str(value)
            elif key == "date":
                parsed = _coerce_date(value)
                if parsed is None:
                    logger.warning("front_matter_date_invalid", file=file_path, value=str(value))
                else:
                    fields["date"] = parsed
            elif key == "era":
                fields["era"] = str(value)
            elif key not in ("file_name", "file_path", "last_modified"):
                extra[key] = value

        return DocumentMetadata(
            **fields,
            file_name=file_name,
            file_path=file_path,
            last_modified=last_modified or dt.datetime.now(dt.timezone.utc),
            extra=extra,
        )
