"""wraith rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from wraith.cli.errors import err_no_api_key
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape

from wraith.rag.llm_client import api_key_env


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_var = api_key_env(provider) or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{escape(provider)}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_invalid_input(message: str) -> str:
    """Path missing, unsupported file type, empty directory or bad chunk size."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Supported documents: .pdf .txt .text .md .markdown .rst\n"
        "  Run:  wraith ingest PATH  with an existing file or directory."
    )


def err_nothing_ingested(skipped: int) -> str:
    """Every discovered file was skipped."""
    return (
        f"[red]Error:[/] No files were successfully processed ({skipped} skipped).\n"
        "  Check that the documents contain extractable text and that the\n"
        "  embedding model is reachable, then run  wraith ingest  again.\n"
        "  Details:  wraith --log-level INFO ingest PATH"
    )


def err_store(message: str, db_path: str) -> str:
    """Vector store could not be opened or used."""
    return (
        f"[red]Error:[/] Vector store failure for '{escape(db_path)}': {escape(message)}\n"
        "  Make sure no other process holds the database and that\n"
        "  embedding.dimensions matches the model used at ingest."
    )


def err_config(message: str) -> str:
    """Config file is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration: {escape(message)}\n"
        "  Fix wraith.yaml or ~/.wraith/config.yaml."
    )


def warn_empty_store(db_path: str) -> str:
    """Query against a store that holds no chunks."""
    return (
        f"[yellow]Warning:[/] The knowledge base at '{escape(db_path)}' is empty.\n"
        "  Run:  wraith ingest PATH  to add documents."
    )


def skip_reason(reason: str) -> str:
    """Short human label for a FileSkipped reason."""
    return {
        "empty": "no text extracted",
        "embedding": "embedding failed",
        "encoding": "encoding error: file contains invalid characters that cannot be stored",
        "storage": "database error",
        "error": "processing error",
    }.get(reason, reason)
