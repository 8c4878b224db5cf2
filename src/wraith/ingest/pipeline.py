"""Ingestion pipeline: files → text → chunks → embeddings → vector store.

Files are processed one at a time, start to finish, so only one document's
chunk set is in memory. A failure while extracting, embedding or storing one
file marks that file as skipped and moves on; the run as a whole fails only
when no file at all could be ingested.

Progress is published as events to an optional ``on_event`` callback so any
front end can render it; nothing here prints.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import structlog

from wraith.db.models import DocumentChunk
from wraith.exceptions import (
    EmbeddingError,
    IngestionError,
    StorageEncodingError,
    StorageError,
    ValidationError,
    WraithError,
)
from wraith.ingest.chunker import ParagraphChunker
from wraith.ingest.extract import default_extractors, sanitize_text
from wraith.ports import DocumentSource, Embedder, VectorStore

logger = structlog.get_logger()

# Skip reasons reported in FileSkipped / IngestReport.skipped
SKIP_EMPTY = "empty"
SKIP_EMBEDDING = "embedding"
SKIP_ENCODING = "encoding"
SKIP_STORAGE = "storage"
SKIP_ERROR = "error"


# ------------------------------------------------------------------
# Events
# ------------------------------------------------------------------


@dataclass(frozen=True)
class IngestStarted:
    root: str
    files: tuple[str, ...]


@dataclass(frozen=True)
class FileStarted:
    path: str
    position: int  # 1-based
    total: int


@dataclass(frozen=True)
class FileIngested:
    path: str
    chunks: int


@dataclass(frozen=True)
class FileSkipped:
    path: str
    reason: str
    detail: str = ""


@dataclass
class IngestReport:
    """Outcome of one ingestion run.

    Attributes:
        successful_files: Files whose chunks were all stored.
        skipped_files: Files that produced no text or failed.
        chunks_stored: Total chunks written across successful files.
        skipped: ``(path, reason)`` per skipped file, in processing order.
    """

    successful_files: int = 0
    skipped_files: int = 0
    chunks_stored: int = 0
    skipped: list[tuple[str, str]] = field(default_factory=list)


@dataclass(frozen=True)
class IngestFinished:
    report: IngestReport


IngestEvent = Union[IngestStarted, FileStarted, FileIngested, FileSkipped, IngestFinished]


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------


class IngestionPipeline:
    """Ingest a file or a directory tree of documents into a vector store.

    Args:
        store: Destination store; each file is one ``insert_documents`` call.
        embedder: Embedding port used for every chunk.
        extractors: Extension → DocumentSource map; defaults to PDF + plain text.
        chunk_size: Default target chunk size in characters.
        overlap: Overlap as a fraction of ``chunk_size``.
        on_event: Called with every IngestEvent as the run progresses.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        extractors: Mapping[str, DocumentSource] | None = None,
        chunk_size: int = 1000,
        overlap: float = 0.10,
        on_event: Callable[[IngestEvent], None] | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.extractors = dict(extractors) if extractors is not None else default_extractors()
        self.chunk_size = chunk_size
        self.overlap = overlap
        self._on_event = on_event

    def run(self, path_name: str, chunk_size: int | None = None) -> IngestReport:
        """Ingest every supported document under *path_name*.

        Raises:
            ValidationError: Bad chunk size, missing path, unsupported file
                type, or a directory without supported documents.
            IngestionError: No file could be ingested.
        """
        chunker = ParagraphChunker(
            chunk_size=self.chunk_size if chunk_size is None else chunk_size,
            overlap=self.overlap,
        )
        files = self.discover(path_name)
        self._emit(IngestStarted(root=path_name.strip(), files=tuple(str(f) for f in files)))
        logger.info("ingest_started", path=path_name.strip(), files=len(files))

        report = IngestReport()
        for position, path in enumerate(files, start=1):
            self._emit(FileStarted(path=str(path), position=position, total=len(files)))
            try:
                stored = self._ingest_file(path, chunker)
            except StorageEncodingError as exc:
                self._skip(report, path, SKIP_ENCODING, f"invalid characters cannot be stored: {exc}")
            except EmbeddingError as exc:
                self._skip(report, path, SKIP_EMBEDDING, str(exc))
            except StorageError as exc:
                self._skip(report, path, SKIP_STORAGE, str(exc))
            except (WraithError, OSError) as exc:
                self._skip(report, path, SKIP_ERROR, str(exc))
            except Exception as exc:
                # Third-party sources and embedders raise their own types.
                logger.warning("file_failed", path=str(path), exc_info=True)
                self._skip(report, path, SKIP_ERROR, str(exc))
            else:
                if stored == 0:
                    self._skip(report, path, SKIP_EMPTY, "no text extracted")
                    continue
                report.successful_files += 1
                report.chunks_stored += stored
                self._emit(FileIngested(path=str(path), chunks=stored))
                logger.info("file_ingested", path=str(path), chunks=stored)

        if report.successful_files == 0:
            logger.error("ingest_failed", skipped=report.skipped_files)
            raise IngestionError(
                f"No files were successfully processed ({report.skipped_files} skipped)",
                skipped_files=report.skipped_files,
            )

        self._emit(IngestFinished(report=report))
        logger.info(
            "ingest_completed",
            successful=report.successful_files,
            skipped=report.skipped_files,
            chunks=report.chunks_stored,
        )
        return report

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self, path_name: str) -> list[Path]:
        """Resolve *path_name* to the sorted list of files to ingest."""
        if not path_name.strip():
            raise ValidationError("No path given")
        path = Path(os.path.normpath(path_name.strip()))
        if not path.exists():
            raise ValidationError(f"Path does not exist: {path}")

        if path.is_dir():
            files = sorted(
                p for p in path.rglob("*") if p.is_file() and self._supports(p)
            )
            if not files:
                raise ValidationError(
                    f"No supported documents found in directory: {path} "
                    f"(supported: {', '.join(sorted(self.extractors))})"
                )
            return files

        if not self._supports(path):
            raise ValidationError(
                f"Unsupported file type '{path.suffix or '(none)'}': {path}"
            )
        return [path]

    def _supports(self, path: Path) -> bool:
        return path.suffix.lower() in self.extractors

    # ------------------------------------------------------------------
    # Per-file pipeline
    # ------------------------------------------------------------------

    def _ingest_file(self, path: Path, chunker: ParagraphChunker) -> int:
        """Extract, chunk, embed and store *path*. Returns chunks stored (0 = no text)."""
        extractor = self.extractors[path.suffix.lower()]
        content = sanitize_text(extractor.extract(path))
        if not content:
            return 0
        logger.debug("text_extracted", path=str(path), characters=len(content))

        segments = chunker.chunk(content)
        if not segments:
            return 0

        source = str(path)
        chunks = [
            DocumentChunk(
                content=segment.text,
                embedding=self.embedder.get_embeddings(segment.text),
                source=source,
                chunk_index=segment.index,
                metadata={
                    "source": source,
                    "chunk_index": segment.index,
                    "file_name": path.name,
                },
            )
            for segment in segments
        ]
        self.store.insert_documents(chunks)
        return len(chunks)

    def _skip(self, report: IngestReport, path: Path, reason: str, detail: str) -> None:
        report.skipped_files += 1
        report.skipped.append((str(path), reason))
        self._emit(FileSkipped(path=str(path), reason=reason, detail=detail))
        logger.warning("file_skipped", path=str(path), reason=reason, detail=detail)

    def _emit(self, event: IngestEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)
