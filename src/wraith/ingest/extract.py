"""Document text extraction: PDF via pypdf, plain text / Markdown as-is.

Extractors never raise for unreadable documents: the failure is logged and
an empty string is returned, which the ingestion pipeline counts as a skip.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path

import pypdf
import structlog

from wraith.ports import DocumentSource

logger = structlog.get_logger()

# NUL and the other C0 controls except \t \n \r, DEL, and lone surrogates.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F\ud800-\udfff]")
_REPLACEMENT_CHAR = "\ufffd"


def sanitize_text(text: str) -> str:
    """Strip control characters, lone surrogates and U+FFFD, then trim whitespace."""
    text = _CONTROL_CHARS.sub("", text)
    return text.replace(_REPLACEMENT_CHAR, "").strip()


class PdfExtractor(DocumentSource):
    """Extract page text with ``pypdf.PdfReader``.

    Pages that yield no text (scanned images, etc.) are skipped; the rest are
    joined with blank lines so page breaks act as paragraph boundaries.
    """

    extensions = frozenset({".pdf"})

    def extract(self, path: Path) -> str:
        try:
            reader = pypdf.PdfReader(path)
            parts: list[str] = []
            for page in reader.pages:
                page_text = (page.extract_text() or "").strip()
                if page_text:
                    parts.append(page_text)
        except Exception as exc:  # malformed PDFs surface as many exception types
            logger.warning("pdf_extraction_failed", path=str(path), error=str(exc))
            return ""
        return sanitize_text("\n\n".join(parts))


class PlainTextExtractor(DocumentSource):
    """Read UTF-8 text files; undecodable bytes become U+FFFD and are dropped."""

    extensions = frozenset({".txt", ".text", ".md", ".markdown", ".rst"})

    def extract(self, path: Path) -> str:
        try:
            content = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("text_extraction_failed", path=str(path), error=str(exc))
            return ""
        return sanitize_text(content)


def default_extractors() -> dict[str, DocumentSource]:
    """Extension → extractor map covering every supported document type."""
    return build_registry([PdfExtractor(), PlainTextExtractor()])


def build_registry(sources: Iterable[DocumentSource]) -> dict[str, DocumentSource]:
    """Index *sources* by each of their extensions; later entries win."""
    registry: dict[str, DocumentSource] = {}
    for source in sources:
        for ext in source.extensions:
            registry[ext.lower()] = source
    return registry
