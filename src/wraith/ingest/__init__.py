"""wraith ingest pipeline: extraction, paragraph chunking, embedding, storage."""

from wraith.ingest.chunker import ParagraphChunker, Segment, chunk_text
from wraith.ingest.extract import (
    PdfExtractor,
    PlainTextExtractor,
    default_extractors,
    sanitize_text,
)
from wraith.ingest.pipeline import IngestionPipeline, IngestReport

__all__ = [
    "IngestReport",
    "IngestionPipeline",
    "ParagraphChunker",
    "PdfExtractor",
    "PlainTextExtractor",
    "Segment",
    "chunk_text",
    "default_extractors",
    "sanitize_text",
]
