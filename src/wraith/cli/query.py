"""wraith query — interactive question answering over the knowledge base.

Prompts for questions until ``exit`` (or end of input). A failing question
is reported and the loop keeps going; the command itself exits 0.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from wraith.cli.errors import err_config, err_no_api_key, err_store, warn_empty_store
from wraith.cli.runtime import (
    generation_options,
    load_runtime_config,
    make_embedder,
    make_llm,
    open_store,
)
from wraith.config import ConfigError
from wraith.exceptions import StorageError, WraithError
from wraith.rag.llm_client import provider_of, validate_api_key
from wraith.rag.query import QueryPipeline

console = Console()

_EXIT_WORD = "exit"


def query_cmd(
    ctx: typer.Context,
    top_k: Annotated[
        int | None,
        typer.Option("--top-k", "-k", min=1, help="Chunks to retrieve per question (default 5)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the wraith database."),
    ] = None,
) -> None:
    """Ask questions about your documents."""
    try:
        cfg = load_runtime_config(db=db, log_level=(ctx.obj or {}).get("log_level"))
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    for model in (cfg.embedding.model, cfg.generation.model):
        try:
            validate_api_key(model)
        except EnvironmentError:
            console.print(err_no_api_key(provider_of(model)))
            raise typer.Exit(1)

    try:
        store = open_store(cfg)
    except StorageError as exc:
        console.print(err_store(str(exc), cfg.store.path))
        raise typer.Exit(1)

    try:
        try:
            empty = store.count() == 0
        except StorageError as exc:
            console.print(err_store(str(exc), cfg.store.path))
            raise typer.Exit(1)
        if empty:
            console.print(warn_empty_store(cfg.store.path))

        pipeline = QueryPipeline(
            store,
            make_embedder(cfg, store),
            make_llm(cfg),
            top_k=top_k or cfg.retrieval.top_k,
            options=generation_options(cfg),
        )
        console.print(f"[blue]🤖 Ask your question[/] [dim](type '{_EXIT_WORD}' to quit)[/]")

        while True:
            try:
                question = typer.prompt("Question", default="", show_default=False)
            except typer.Abort:
                break
            if question.strip().lower() == _EXIT_WORD:
                break
            if not question.strip():
                console.print("[yellow]Please enter a question[/]")
                continue

            try:
                with console.status("🔍 Searching..."):
                    result = pipeline.run(question)
            except WraithError as exc:
                console.print(f"[red]Error:[/] {escape(str(exc))}")
                continue

            console.print(f"[green]📝 Answer:[/] {escape(result.answer)}")
            if result.sources:
                console.print(f"[dim]Sources: {escape(', '.join(result.sources))}[/]")
    finally:
        store.close()
