"""wraith ingest — add documents to the knowledge base.

Supported documents: .pdf (pypdf) and .txt / .text / .md / .markdown / .rst.
A directory is scanned recursively. Each file is extracted, chunked by
paragraph, embedded and stored as one atomic batch; files that fail are
skipped and reported, and the command fails only if nothing was ingested.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from wraith.cli.errors import (
    err_config,
    err_invalid_input,
    err_no_api_key,
    err_nothing_ingested,
    err_store,
    skip_reason,
)
from wraith.cli.runtime import load_runtime_config, make_embedder, open_store
from wraith.config import ConfigError
from wraith.exceptions import IngestionError, StorageError, ValidationError
from wraith.ingest.pipeline import (
    FileIngested,
    FileSkipped,
    FileStarted,
    IngestEvent,
    IngestionPipeline,
    IngestStarted,
)
from wraith.rag.llm_client import provider_of, validate_api_key

console = Console()


def ingest_cmd(
    ctx: typer.Context,
    path: Annotated[
        str | None,
        typer.Argument(help="File or directory to ingest (prompted for when omitted)."),
    ] = None,
    chunk_size: Annotated[
        int | None,
        typer.Option("--chunk-size", help="Target chunk size in characters (default 1000)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the wraith database (created if missing)."),
    ] = None,
) -> None:
    """Add documents to the knowledge base."""
    if path is None:
        path = typer.prompt("Enter file or directory name")

    try:
        cfg = load_runtime_config(db=db, log_level=(ctx.obj or {}).get("log_level"))
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    try:
        validate_api_key(cfg.embedding.model)
    except EnvironmentError:
        console.print(err_no_api_key(provider_of(cfg.embedding.model)))
        raise typer.Exit(1)

    try:
        store = open_store(cfg)
    except StorageError as exc:
        console.print(err_store(str(exc), cfg.store.path))
        raise typer.Exit(1)

    console.print(f"[blue]📂 Ingesting documents from:[/] {escape(path)}")
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            transient=True,
            console=console,
        ) as prog:
            pipeline = IngestionPipeline(
                store,
                make_embedder(cfg, store),
                chunk_size=cfg.ingest.chunk_size,
                overlap=cfg.ingest.overlap,
                on_event=_ProgressRenderer(prog),
            )
            report = pipeline.run(path, chunk_size=chunk_size)
    except ValidationError as exc:
        console.print(err_invalid_input(str(exc)))
        raise typer.Exit(1)
    except IngestionError as exc:
        console.print(err_nothing_ingested(exc.skipped_files))
        raise typer.Exit(1)
    finally:
        store.close()

    console.print("[green]🎉 Processing complete:[/]")
    console.print(
        f"   [green]✓[/] Successfully processed: {report.successful_files} files "
        f"({report.chunks_stored} chunks)"
    )
    if report.skipped_files:
        console.print(f"   [yellow]⚠[/] Skipped: {report.skipped_files} files")


class _ProgressRenderer:
    """Turn ingestion events into a rich progress bar plus per-file lines."""

    def __init__(self, prog: Progress) -> None:
        self._prog = prog
        self._task = prog.add_task("Discovering documents…", total=None)

    def __call__(self, event: IngestEvent) -> None:
        if isinstance(event, IngestStarted):
            self._prog.update(self._task, total=len(event.files))
            self._prog.console.print(f"  [dim]📄 Found {len(event.files)} document(s)[/]")
        elif isinstance(event, FileStarted):
            self._prog.update(
                self._task,
                description=f"Processing {escape(Path(event.path).name)} "
                f"({event.position}/{event.total})",
            )
        elif isinstance(event, FileIngested):
            self._prog.console.print(
                f"  [green]✓[/] {escape(Path(event.path).name)} — {event.chunks} chunks"
            )
            self._prog.advance(self._task)
        elif isinstance(event, FileSkipped):
            self._prog.console.print(
                f"  [yellow]⚠ Skipped[/] {escape(Path(event.path).name)}: "
                f"{escape(skip_reason(event.reason))}"
            )
            self._prog.advance(self._task)
