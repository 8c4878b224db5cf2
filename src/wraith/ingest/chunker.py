"""Paragraph chunker: blank-line boundaries with paragraph overlap."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from wraith.exceptions import ValidationError

# One or more blank lines (whitespace-only lines count as blank).
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


@dataclass(frozen=True)
class Segment:
    text: str
    index: int


class ParagraphChunker:
    """Group paragraphs into chunks of at most ``chunk_size`` characters.

    Strategy:
    - Split on blank lines; drop empty paragraphs.
    - Greedily join paragraphs with a blank line while the result fits in
      ``chunk_size``. A paragraph that alone exceeds the limit becomes its
      own oversized chunk; paragraphs are never cut.
    - The next chunk restarts ``ceil(n * overlap_ratio)`` paragraphs before
      the end of the previous one (n = paragraphs in that chunk), always
      advancing by at least one paragraph.

    ``overlap`` is a fraction of ``chunk_size``; the overlap in characters is
    ``int(chunk_size * overlap)`` and the ratio applied to paragraph counts
    is that figure divided by ``chunk_size``.
    """

    def __init__(self, chunk_size: int = 1000, overlap: float = 0.10) -> None:
        if chunk_size < 1:
            raise ValidationError(f"chunk_size must be >= 1, got {chunk_size}")
        if not 0.0 <= overlap < 1.0:
            raise ValidationError(f"overlap must be in [0.0, 1.0), got {overlap}")
        self.chunk_size = chunk_size
        self.overlap = overlap

    @property
    def overlap_ratio(self) -> float:
        return int(self.chunk_size * self.overlap) / self.chunk_size

    def chunk(self, content: str) -> list[Segment]:
        """Split *content* into ordered segments with sequential indexes."""
        return [Segment(text=t, index=i) for i, t in enumerate(self.split(content))]

    def split(self, content: str) -> list[str]:
        paragraphs = [p for p in _PARAGRAPH_BREAK.split(content) if p.strip()]
        chunks: list[str] = []

        i = 0
        while i < len(paragraphs):
            current = ""
            taken = 0
            while i + taken < len(paragraphs):
                candidate = (
                    f"{current}\n\n{paragraphs[i + taken]}" if current else paragraphs[i + taken]
                )
                if len(candidate) > self.chunk_size and current:
                    break
                current = candidate
                taken += 1

            chunks.append(current.strip())

            overlap_paragraphs = math.ceil(taken * self.overlap_ratio)
            i += max(1, taken - overlap_paragraphs)

        return chunks


def chunk_text(content: str, chunk_size: int, overlap: float = 0.10) -> list[Segment]:
    """Functional form of ``ParagraphChunker(chunk_size, overlap).chunk(content)``."""
    return ParagraphChunker(chunk_size=chunk_size, overlap=overlap).chunk(content)
