"""Structured logging setup.

Core modules call ``structlog.get_logger()`` and emit snake_case events with
keyword context. Rendering is decided once, here, by the front end.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(level: str = "WARNING", json_output: bool = False) -> None:
    """Route structlog through the stdlib logging tree on stderr.

    Args:
        level: Standard logging level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Render one JSON object per line instead of console text.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level!r}")

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric, force=True)
    # LiteLLM logs request details at INFO; keep it quiet unless debugging.
    logging.getLogger("LiteLLM").setLevel(max(numeric, logging.WARNING))

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
